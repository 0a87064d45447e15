"""AWS provider implementation."""

from .store import S3ObjectStore

__all__ = ["S3ObjectStore"]
