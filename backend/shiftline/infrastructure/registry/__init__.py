"""Reference registry implementations."""

from .store_registry import StoreBackedRegistry

__all__ = ["StoreBackedRegistry"]
