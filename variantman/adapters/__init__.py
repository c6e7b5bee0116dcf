"""
Variantman Adapters.

Implementations of the catalog protocols:
- OrmCatalogBackend: variantman's own models (default)
- InMemoryCatalogBackend: dicts, for tests and non-Django storage

The ORM adapter is imported lazily so the engine can run without the
app's models being loaded.
"""

from variantman.adapters.memory import InMemoryCatalogBackend
from variantman.conf import get_catalog_backend, reset_catalog_backend


def __getattr__(name):
    if name == "OrmCatalogBackend":
        from variantman.adapters.orm import OrmCatalogBackend

        return OrmCatalogBackend
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "InMemoryCatalogBackend",
    "OrmCatalogBackend",
    "get_catalog_backend",
    "reset_catalog_backend",
]
