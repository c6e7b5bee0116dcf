"""
Variantman Service - Thin wrapper over the wizard and the catalog backend.

Every variant write either goes through VariantWizard (create/edit) or
through the catalog-level operations here (default hand-over, delete,
verification). All of them keep "one default per product" intact.

Usage:
    from variantman import variants, VariantError

    wizard = variants.open_add(product_id)
    wizard.select_attribute(color_id)
    wizard.set_value(color_id, "Golden")
    wizard.next()
    variant = wizard.save()

    variants.set_default(variant.id)
    variants.verify(variant.id, True, user=request.user)
    variants.suggest_code(product_id, "Blue Edition", color="Blue")
"""

import logging
from contextlib import contextmanager

from variantman.codes import derive_descriptor_code
from variantman.conf import get_catalog_backend
from variantman.exceptions import CollaboratorError, VariantError
from variantman.protocols.catalog import CatalogBackend, VariantRecord
from variantman.wizard import VariantWizard

logger = logging.getLogger(__name__)


@contextmanager
def _unit_of_work(backend: CatalogBackend, action: str, **context):
    """Run the block atomically; collaborator failures become CollaboratorError."""
    try:
        with backend.atomic():
            yield
    except VariantError:
        raise
    except Exception as e:
        logger.error(f"{action} failed: {e}", extra=context)
        raise CollaboratorError("COMMIT_FAILED", action=action, error=str(e), **context) from e


class Variants:
    """
    Main API for Variantman (thin wrapper).

    `backend` defaults to the configured CATALOG_BACKEND.
    """

    # ══════════════════════════════════════════════════════════════
    # WIZARD
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def open_add(cls, product_id: str, backend: CatalogBackend | None = None, **kwargs) -> VariantWizard:
        """Open the wizard to create a variant of a product."""
        return VariantWizard.open_add(backend or get_catalog_backend(), product_id, **kwargs)

    @classmethod
    def open_edit(cls, variant_id: str, backend: CatalogBackend | None = None, **kwargs) -> VariantWizard:
        """Open the wizard on an existing variant."""
        return VariantWizard.open_edit(backend or get_catalog_backend(), variant_id, **kwargs)

    # ══════════════════════════════════════════════════════════════
    # DEFAULT VARIANT
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def set_default(cls, variant_id: str, backend: CatalogBackend | None = None) -> VariantRecord:
        """
        Make a variant the product's default.

        Siblings lose the flag in the same unit of work.

        Raises:
            VariantError: VARIANT_NOT_FOUND
            CollaboratorError: COMMIT_FAILED
        """
        backend = backend or get_catalog_backend()

        with _unit_of_work(backend, "set_default", variant_id=variant_id):
            variant = backend.get_variant(variant_id)
            if variant is None:
                raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)
            if variant.is_default:
                return variant

            backend.clear_default(variant.product_id, exclude_variant_id=variant.id)
            variant = backend.update_variant(variant.id, is_default=True)

        logger.info(
            f"Variant {variant.code} is now the default of product {variant.product_id}",
            extra={"variant_id": variant.id, "product_id": variant.product_id},
        )

        from variantman.signals import default_changed

        default_changed.send(sender=cls, product_id=variant.product_id, variant=variant)
        return variant

    # ══════════════════════════════════════════════════════════════
    # DELETE
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def delete(cls, variant_id: str, backend: CatalogBackend | None = None) -> VariantRecord | None:
        """
        Delete a variant.

        Deleting the default promotes the first remaining variant
        (creation order).

        Returns:
            The promoted variant, or None if no promotion happened

        Raises:
            VariantError: VARIANT_NOT_FOUND
            CollaboratorError: COMMIT_FAILED
        """
        backend = backend or get_catalog_backend()
        promoted = None

        with _unit_of_work(backend, "delete", variant_id=variant_id):
            variant = backend.get_variant(variant_id)
            if variant is None:
                raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

            remaining = [v for v in backend.list_variants(variant.product_id) if v.id != variant.id]
            backend.delete_variant(variant.id)

            if variant.is_default and remaining:
                promoted = backend.update_variant(remaining[0].id, is_default=True)

        logger.info(
            f"Variant {variant.code} deleted from product {variant.product_id}",
            extra={
                "variant_id": variant.id,
                "product_id": variant.product_id,
                "promoted": promoted.id if promoted else None,
            },
        )

        from variantman.signals import default_changed, variant_deleted

        variant_deleted.send(sender=cls, variant=variant, promoted=promoted)
        if promoted is not None:
            default_changed.send(sender=cls, product_id=variant.product_id, variant=promoted)
        return promoted

    # ══════════════════════════════════════════════════════════════
    # VERIFICATION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def verify(
        cls,
        variant_id: str,
        verified: bool,
        user=None,
        backend: CatalogBackend | None = None,
    ) -> VariantRecord:
        """
        Set the verified flag of a variant.

        The only path that changes is_verified; the wizard never does.

        Raises:
            VariantError: VARIANT_NOT_FOUND
        """
        backend = backend or get_catalog_backend()
        verified_by = f"user:{user.username}" if user is not None else ""

        if backend.get_variant(variant_id) is None:
            raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

        variant = backend.set_variant_verified(variant_id, bool(verified), verified_by=verified_by)

        logger.info(
            f"Variant {variant.code} {'verified' if variant.is_verified else 'unverified'}"
            + (f" by {verified_by}" if verified_by else ""),
            extra={"variant_id": variant.id, "verified_by": verified_by},
        )

        from variantman.signals import variant_verified

        variant_verified.send(
            sender=cls,
            variant=variant,
            verified=variant.is_verified,
            verified_by=verified_by,
        )
        return variant

    # ══════════════════════════════════════════════════════════════
    # CODE SUGGESTION
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def suggest_code(
        cls,
        product_id: str,
        name: str,
        color: str | None = None,
        size: str | None = None,
        size_unit: str | None = None,
        backend: CatalogBackend | None = None,
    ) -> str:
        """
        Suggest a code for an ad-hoc variant from its name and descriptors.

        Example:
            >>> # product code "BEA-SHP001"
            >>> variants.suggest_code(towel_id, "Blue Edition", color="Blue", size="520")
            'BEA-BLUE-EDIT-BLUE-520'
        """
        backend = backend or get_catalog_backend()
        product = backend.get_product(product_id)
        if product is None:
            raise VariantError("PRODUCT_NOT_FOUND", product_id=product_id)
        return derive_descriptor_code(product, name, color=color, size=size, size_unit=size_unit)


# Singleton-like access
variants = Variants
