"""
Variant and VariantAttributeValue models.

The database enforces what the wizard guarantees:
- code unique per product
- at most one default variant per product (partial unique index)
- one value per (variant, attribute)
"""

from django.core.exceptions import ValidationError
from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _
from simple_history.models import HistoricalRecords

from variantman.codes import CODE_MAX_LENGTH
from variantman.protocols.catalog import VariantRecord


class Variant(models.Model):
    """
    A concrete, sellable form of a product.

    Created and edited through VariantWizard; verified only through
    Variants.verify().
    """

    product = models.ForeignKey(
        "variantman.Product",
        on_delete=models.CASCADE,
        related_name="variants",
        verbose_name=_("Product"),
    )
    name = models.CharField(
        max_length=200,
        verbose_name=_("Name"),
    )
    code = models.CharField(
        max_length=CODE_MAX_LENGTH,
        verbose_name=_("Code"),
        help_text=_("Unique within the product, e.g. PREM-GOLD-500ML"),
    )
    is_default = models.BooleanField(
        default=False,
        verbose_name=_("Default"),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Active"),
    )

    # Verification
    is_verified = models.BooleanField(
        default=False,
        verbose_name=_("Verified"),
    )
    verified_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name=_("Verified at"),
    )
    verified_by = models.CharField(
        max_length=100,
        blank=True,
        verbose_name=_("Verified by"),
        help_text=_("Format: user:{username}"),
    )

    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Created at"),
    )
    updated_at = models.DateTimeField(
        auto_now=True,
        verbose_name=_("Updated at"),
    )

    history = HistoricalRecords()

    class Meta:
        db_table = "variantman_variant"
        verbose_name = _("Variant")
        verbose_name_plural = _("Variants")
        ordering = ["product", "-is_default", "created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "code"],
                name="variantman_unique_variant_code",
            ),
            models.UniqueConstraint(
                fields=["product"],
                condition=Q(is_default=True),
                name="variantman_one_default_per_product",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}"

    def clean(self):
        super().clean()
        errors = {}
        if not (self.name or "").strip():
            errors["name"] = _("Variant name is required.")
        if not (self.code or "").strip():
            errors["code"] = _("Variant code is required.")
        elif self.product_id:
            taken = Variant.objects.filter(product_id=self.product_id, code=self.code.strip())
            if self.pk:
                taken = taken.exclude(pk=self.pk)
            if taken.exists():
                errors["code"] = _("This code is already used by another variant of the product.")
        if errors:
            raise ValidationError(errors)

    def as_record(self) -> VariantRecord:
        return VariantRecord(
            id=str(self.pk),
            product_id=str(self.product_id),
            name=self.name,
            code=self.code,
            is_default=self.is_default,
            is_active=self.is_active,
            is_verified=self.is_verified,
        )


class VariantAttributeValue(models.Model):
    """Value a variant carries for one attribute of its product."""

    variant = models.ForeignKey(
        Variant,
        on_delete=models.CASCADE,
        related_name="attribute_values",
        verbose_name=_("Variant"),
    )
    attribute = models.ForeignKey(
        "variantman.ProductAttribute",
        on_delete=models.CASCADE,
        related_name="variant_values",
        verbose_name=_("Attribute"),
    )
    value = models.CharField(
        max_length=200,
        blank=True,
        verbose_name=_("Value"),
    )

    class Meta:
        db_table = "variantman_variant_attribute_value"
        verbose_name = _("Variant Attribute Value")
        verbose_name_plural = _("Variant Attribute Values")
        constraints = [
            models.UniqueConstraint(
                fields=["variant", "attribute"],
                name="variantman_unique_variant_attribute",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.attribute.name}: {self.value}"
