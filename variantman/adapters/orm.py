"""
ORM Catalog Backend.

Implements CatalogBackend over variantman's own models.

Vocabulary mapping:
    Protocol                         →  ORM
    ─────────────────────────────────────────────────────────────
    list_variants()                  →  Variant (select_for_update inside atomic)
    clear_default()                  →  Variant.is_default = False (per row, recorded in history)
    set_attribute_variant_defining() →  ProductAttribute.is_variant_defining
    bulk_upsert_attribute_values()   →  VariantAttributeValue.update_or_create
    set_variant_verified()           →  Variant.is_verified / verified_at / verified_by
    atomic()                         →  transaction.atomic()

Ids cross the boundary as strings (str(pk)).
"""

import logging
from typing import Any

from django.db import transaction
from django.utils import timezone

from variantman.exceptions import VariantError
from variantman.models import Product, ProductAttribute, Variant, VariantAttributeValue
from variantman.protocols.catalog import AttributeDefinition, ProductIdentity, VariantRecord

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("name", "code", "is_default", "is_active")


def _pk(value) -> int | None:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class OrmCatalogBackend:
    """
    CatalogBackend backed by the Django ORM.

    Example:
        from variantman.adapters import get_catalog_backend

        backend = get_catalog_backend()
        wizard = VariantWizard.open_add(backend, str(product.pk))
    """

    # ── VariantCatalog ──

    def get_product(self, product_id: str) -> ProductIdentity | None:
        product = Product.objects.filter(pk=_pk(product_id)).first()
        return product.as_identity() if product else None

    def get_variant(self, variant_id: str) -> VariantRecord | None:
        variant = Variant.objects.filter(pk=_pk(variant_id)).first()
        return variant.as_record() if variant else None

    def list_variants(self, product_id: str) -> list[VariantRecord]:
        qs = Variant.objects.filter(product_id=_pk(product_id)).order_by("-is_default", "created_at", "id")
        if transaction.get_connection().in_atomic_block:
            qs = qs.select_for_update()
        return [variant.as_record() for variant in qs]

    def create_variant(
        self, product_id: str, name: str, code: str, is_default: bool, is_active: bool = True
    ) -> VariantRecord:
        product = Product.objects.filter(pk=_pk(product_id)).first()
        if product is None:
            raise VariantError("PRODUCT_NOT_FOUND", product_id=product_id)
        variant = Variant.objects.create(
            product=product,
            name=name,
            code=code,
            is_default=is_default,
            is_active=is_active,
        )
        logger.debug(f"Created variant {variant.pk} ({code}) for product {product_id}")
        return variant.as_record()

    def update_variant(self, variant_id: str, **fields: Any) -> VariantRecord:
        unknown = set(fields) - set(UPDATABLE_FIELDS)
        if unknown:
            raise TypeError(f"Cannot update variant fields: {sorted(unknown)}")

        variant = Variant.objects.filter(pk=_pk(variant_id)).first()
        if variant is None:
            raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

        changed = [name for name, value in fields.items() if getattr(variant, name) != value]
        if changed:
            for name in changed:
                setattr(variant, name, fields[name])
            variant.save(update_fields=[*changed, "updated_at"])
        return variant.as_record()

    def clear_default(self, product_id: str, exclude_variant_id: str | None = None) -> int:
        qs = Variant.objects.filter(product_id=_pk(product_id), is_default=True)
        if exclude_variant_id is not None:
            qs = qs.exclude(pk=_pk(exclude_variant_id))
        count = 0
        # Saved one by one so each change lands in the variant history.
        for variant in qs:
            variant.is_default = False
            variant.save(update_fields=["is_default", "updated_at"])
            count += 1
        return count

    def delete_variant(self, variant_id: str) -> bool:
        deleted, _ = Variant.objects.filter(pk=_pk(variant_id)).delete()
        return deleted > 0

    def atomic(self):
        return transaction.atomic()

    # ── AttributeStore ──

    def fetch_attribute_definitions(self, product_id: str) -> list[AttributeDefinition]:
        qs = ProductAttribute.objects.filter(product_id=_pk(product_id)).order_by("position", "id")
        return [attribute.as_definition() for attribute in qs]

    def fetch_existing_variant_values(self, variant_id: str) -> dict[str, str]:
        rows = VariantAttributeValue.objects.filter(variant_id=_pk(variant_id)).values_list(
            "attribute_id", "value"
        )
        return {str(attribute_id): value for attribute_id, value in rows}

    def set_attribute_variant_defining(self, attribute_id: str, is_variant_defining: bool) -> None:
        ProductAttribute.objects.filter(pk=_pk(attribute_id)).update(
            is_variant_defining=is_variant_defining
        )

    def bulk_upsert_attribute_values(self, variant_id: str, values: list[tuple[str, str]]) -> None:
        for attribute_id, value in values:
            VariantAttributeValue.objects.update_or_create(
                variant_id=_pk(variant_id),
                attribute_id=_pk(attribute_id),
                defaults={"value": value},
            )

    # ── VerificationLedger ──

    def set_variant_verified(self, variant_id: str, verified: bool, verified_by: str = "") -> VariantRecord:
        variant = Variant.objects.filter(pk=_pk(variant_id)).first()
        if variant is None:
            raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

        variant.is_verified = verified
        variant.verified_at = timezone.now() if verified else None
        variant.verified_by = verified_by if verified else ""
        variant.save(update_fields=["is_verified", "verified_at", "verified_by", "updated_at"])
        return variant.as_record()
