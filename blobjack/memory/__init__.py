"""In-process provider implementation."""

from .store import MemoryBackend, MemoryObjectStore

__all__ = ["MemoryBackend", "MemoryObjectStore"]
