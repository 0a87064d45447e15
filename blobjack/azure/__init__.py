"""Azure provider implementation."""

from .store import AzureObjectStore

__all__ = ["AzureObjectStore"]
