"""GCP provider implementation."""

from .store import GCSObjectStore

__all__ = ["GCSObjectStore"]
