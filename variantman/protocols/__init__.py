"""
Variantman Protocols.

Defines interfaces for external integrations.
"""

from variantman.protocols.catalog import (
    AttributeDefinition,
    AttributeStore,
    CatalogBackend,
    ProductIdentity,
    VariantCatalog,
    VariantRecord,
    VerificationLedger,
)

__all__ = [
    # Catalog Protocols
    "VariantCatalog",
    "AttributeStore",
    "VerificationLedger",
    "CatalogBackend",
    # Data types
    "ProductIdentity",
    "AttributeDefinition",
    "VariantRecord",
]
