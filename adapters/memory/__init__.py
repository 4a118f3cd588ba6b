"""In-process storage adapters."""

from .store import InMemoryAccessKeyStore

__all__ = ["InMemoryAccessKeyStore"]
