"""
Catalog Protocol - Interface for variant and attribute persistence.

Variantman defines these protocols. A storage layer implements them
(the bundled OrmCatalogBackend, the InMemoryCatalogBackend fake, or any
external service client).

Vocabulary:
    list_variants()                   →  sibling variants of a product
    create_variant() / update_variant()  →  commit of a wizard draft
    clear_default()                   →  keeps "at most one default"
    set_attribute_variant_defining()  →  flags the attributes chosen as discriminators
    bulk_upsert_attribute_values()    →  persists the chosen values
"""

from __future__ import annotations

from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable


# ══════════════════════════════════════════════════════════════
# DATA TYPES
# ══════════════════════════════════════════════════════════════


@dataclass(frozen=True)
class ProductIdentity:
    """Product identity used to derive variant codes."""

    name: str = ""
    code: str | None = None
    id: str | None = None


@dataclass(frozen=True)
class AttributeDefinition:
    """A product attribute that may distinguish variants."""

    id: str
    name: str
    is_variant_defining: bool = False
    position: int = 0


@dataclass(frozen=True)
class VariantRecord:
    """Persisted variant as seen by the engine."""

    id: str
    product_id: str
    name: str
    code: str
    is_default: bool = False
    is_active: bool = True
    is_verified: bool = False


# ══════════════════════════════════════════════════════════════
# PROTOCOLS
# ══════════════════════════════════════════════════════════════


@runtime_checkable
class VariantCatalog(Protocol):
    """
    Variant side of the catalog.

    Write methods must be idempotent on retry. `atomic()` groups the writes
    of one commit so readers never see zero or two defaults.
    """

    def get_product(self, product_id: str) -> ProductIdentity | None:
        """Return the product identity or None if not found."""
        ...

    def get_variant(self, variant_id: str) -> VariantRecord | None:
        """Return one variant or None if not found."""
        ...

    def list_variants(self, product_id: str) -> list[VariantRecord]:
        """Return the product's variants, default first, then creation order."""
        ...

    def create_variant(
        self,
        product_id: str,
        name: str,
        code: str,
        is_default: bool,
        is_active: bool = True,
    ) -> VariantRecord:
        """Create a variant. New variants are never verified."""
        ...

    def update_variant(self, variant_id: str, **fields: Any) -> VariantRecord:
        """Update name/code/is_default/is_active of a variant."""
        ...

    def clear_default(self, product_id: str, exclude_variant_id: str | None = None) -> int:
        """Unset is_default on every variant of the product except one. Returns rows changed."""
        ...

    def delete_variant(self, variant_id: str) -> bool:
        """Delete a variant. Returns False if it did not exist."""
        ...

    def atomic(self) -> AbstractContextManager:
        """Context manager making the enclosed writes a single unit of work."""
        ...


@runtime_checkable
class AttributeStore(Protocol):
    """Attribute side of the catalog."""

    def fetch_attribute_definitions(self, product_id: str) -> list[AttributeDefinition]:
        """Return the product's attributes in definition order."""
        ...

    def fetch_existing_variant_values(self, variant_id: str) -> dict[str, str]:
        """Return {attribute id: value} persisted for a variant."""
        ...

    def set_attribute_variant_defining(self, attribute_id: str, is_variant_defining: bool) -> None:
        """Flag or unflag an attribute as variant-defining."""
        ...

    def bulk_upsert_attribute_values(
        self,
        variant_id: str,
        values: list[tuple[str, str]],
    ) -> None:
        """Insert or update (attribute id, value) pairs for a variant."""
        ...


@runtime_checkable
class VerificationLedger(Protocol):
    """
    Per-variant verified flag.

    Only privileged actors call this; the wizard never does.
    """

    def set_variant_verified(
        self,
        variant_id: str,
        verified: bool,
        verified_by: str = "",
    ) -> VariantRecord:
        """Set the verified flag and return the updated variant."""
        ...


@runtime_checkable
class CatalogBackend(VariantCatalog, AttributeStore, VerificationLedger, Protocol):
    """Everything the wizard and the Variants service need from storage."""
