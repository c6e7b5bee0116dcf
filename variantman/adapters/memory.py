"""
In-memory catalog backend.

Implements CatalogBackend with plain dicts. Use it for tests, demos, or
callers that keep their catalog outside Django's ORM.

Configuration:
    VARIANTMAN = {
        "CATALOG_BACKEND": "variantman.adapters.memory.InMemoryCatalogBackend",
    }

`atomic()` snapshots the whole store and restores it if the block raises,
so a failed commit leaves no partial writes behind.
"""

from __future__ import annotations

import copy
import itertools
import threading
from contextlib import contextmanager
from dataclasses import replace
from typing import Any

from variantman.exceptions import VariantError
from variantman.protocols.catalog import AttributeDefinition, ProductIdentity, VariantRecord

UPDATABLE_FIELDS = ("name", "code", "is_default", "is_active")


class InMemoryCatalogBackend:
    """Dict-backed implementation of CatalogBackend."""

    def __init__(self):
        self._lock = threading.RLock()
        self._ids = itertools.count(1)
        self.products: dict[str, ProductIdentity] = {}
        self.attributes: dict[str, AttributeDefinition] = {}
        self.attribute_product: dict[str, str] = {}
        self.variants: dict[str, VariantRecord] = {}
        self.variant_seq: dict[str, int] = {}
        self.values: dict[str, dict[str, str]] = {}
        self.verified_by: dict[str, str] = {}

    # ── Seeding ──

    def _next_id(self, prefix: str) -> str:
        return f"{prefix}{next(self._ids)}"

    def add_product(self, name: str, code: str | None = None, product_id: str | None = None) -> str:
        product_id = product_id or self._next_id("p")
        self.products[product_id] = ProductIdentity(name=name, code=code, id=product_id)
        return product_id

    def add_attribute(
        self,
        product_id: str,
        name: str,
        is_variant_defining: bool = False,
        attribute_id: str | None = None,
    ) -> str:
        attribute_id = attribute_id or self._next_id("a")
        position = sum(1 for pid in self.attribute_product.values() if pid == product_id)
        self.attributes[attribute_id] = AttributeDefinition(
            id=attribute_id,
            name=name,
            is_variant_defining=is_variant_defining,
            position=position,
        )
        self.attribute_product[attribute_id] = product_id
        return attribute_id

    # ── VariantCatalog ──

    def get_product(self, product_id: str) -> ProductIdentity | None:
        return self.products.get(product_id)

    def get_variant(self, variant_id: str) -> VariantRecord | None:
        return self.variants.get(variant_id)

    def list_variants(self, product_id: str) -> list[VariantRecord]:
        variants = [v for v in self.variants.values() if v.product_id == product_id]
        return sorted(variants, key=lambda v: (not v.is_default, self.variant_seq[v.id]))

    def create_variant(
        self, product_id: str, name: str, code: str, is_default: bool, is_active: bool = True
    ) -> VariantRecord:
        with self._lock:
            if product_id not in self.products:
                raise VariantError("PRODUCT_NOT_FOUND", product_id=product_id)
            variant_id = self._next_id("v")
            variant = VariantRecord(
                id=variant_id,
                product_id=product_id,
                name=name,
                code=code,
                is_default=is_default,
                is_active=is_active,
            )
            self._check_integrity(product_id, variant)
            self.variants[variant_id] = variant
            self.variant_seq[variant_id] = len(self.variant_seq)
            return variant

    def update_variant(self, variant_id: str, **fields: Any) -> VariantRecord:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"Cannot update variant fields: {sorted(unknown)}")

        with self._lock:
            variant = self.variants.get(variant_id)
            if variant is None:
                raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)
            variant = replace(variant, **fields)
            self._check_integrity(variant.product_id, variant)
            self.variants[variant_id] = variant
            return variant

    def clear_default(self, product_id: str, exclude_variant_id: str | None = None) -> int:
        changed = 0
        with self._lock:
            for variant in list(self.variants.values()):
                if variant.product_id != product_id or variant.id == exclude_variant_id:
                    continue
                if variant.is_default:
                    self.variants[variant.id] = replace(variant, is_default=False)
                    changed += 1
        return changed

    def delete_variant(self, variant_id: str) -> bool:
        with self._lock:
            if self.variants.pop(variant_id, None) is None:
                return False
            self.variant_seq.pop(variant_id, None)
            self.values.pop(variant_id, None)
            self.verified_by.pop(variant_id, None)
            return True

    @contextmanager
    def atomic(self):
        with self._lock:
            snapshot = self._snapshot()
            try:
                yield self
            except BaseException:
                self._restore(snapshot)
                raise

    # ── AttributeStore ──

    def fetch_attribute_definitions(self, product_id: str) -> list[AttributeDefinition]:
        definitions = [
            attr for attr_id, attr in self.attributes.items()
            if self.attribute_product[attr_id] == product_id
        ]
        return sorted(definitions, key=lambda d: d.position)

    def fetch_existing_variant_values(self, variant_id: str) -> dict[str, str]:
        return dict(self.values.get(variant_id, {}))

    def set_attribute_variant_defining(self, attribute_id: str, is_variant_defining: bool) -> None:
        with self._lock:
            attribute = self.attributes[attribute_id]
            self.attributes[attribute_id] = replace(attribute, is_variant_defining=is_variant_defining)

    def bulk_upsert_attribute_values(self, variant_id: str, values: list[tuple[str, str]]) -> None:
        with self._lock:
            if variant_id not in self.variants:
                raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)
            stored = self.values.setdefault(variant_id, {})
            for attribute_id, value in values:
                stored[attribute_id] = value

    # ── VerificationLedger ──

    def set_variant_verified(self, variant_id: str, verified: bool, verified_by: str = "") -> VariantRecord:
        with self._lock:
            variant = self.variants.get(variant_id)
            if variant is None:
                raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)
            variant = replace(variant, is_verified=verified)
            self.variants[variant_id] = variant
            if verified:
                self.verified_by[variant_id] = verified_by
            else:
                self.verified_by.pop(variant_id, None)
            return variant

    # ── Internals ──

    def _check_integrity(self, product_id: str, candidate: VariantRecord) -> None:
        """Mirror the database constraints: unique code and at most one default per product."""
        variants = [
            v for v in self.variants.values()
            if v.product_id == product_id and v.id != candidate.id
        ]
        variants.append(candidate)
        codes = [v.code for v in variants]
        if len(codes) != len(set(codes)):
            raise ValueError(f"Duplicate variant code for product {product_id}")
        if sum(1 for v in variants if v.is_default) > 1:
            raise ValueError(f"More than one default variant for product {product_id}")

    def _snapshot(self) -> dict:
        return copy.deepcopy(
            {
                "attributes": self.attributes,
                "variants": self.variants,
                "variant_seq": self.variant_seq,
                "values": self.values,
                "verified_by": self.verified_by,
            }
        )

    def _restore(self, snapshot: dict) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)
