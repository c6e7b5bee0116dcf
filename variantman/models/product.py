"""
Product and ProductAttribute models.

Product = the thing being sold; its name/code seed every variant code.
ProductAttribute = a property of the product (Color, Size...) that may be
flagged as variant-defining.
"""

from django.db import models
from django.utils.translation import gettext_lazy as _

from variantman.protocols.catalog import AttributeDefinition, ProductIdentity


class Product(models.Model):
    """
    Catalog product.

    `code` is optional; when present its first segment (before "-")
    becomes the prefix of every variant code.
    """

    name = models.CharField(
        max_length=200,
        verbose_name=_("Name"),
    )
    code = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name=_("Code"),
        help_text=_("Optional, e.g. PREM-001. Prefix of variant codes."),
    )
    is_active = models.BooleanField(
        default=True,
        verbose_name=_("Active"),
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        verbose_name=_("Created at"),
    )

    class Meta:
        db_table = "variantman_product"
        verbose_name = _("Product")
        verbose_name_plural = _("Products")
        ordering = ["name"]

    def __str__(self) -> str:
        return f"{self.code} - {self.name}" if self.code else self.name

    def as_identity(self) -> ProductIdentity:
        return ProductIdentity(name=self.name, code=self.code or None, id=str(self.pk))


class ProductAttribute(models.Model):
    """Named attribute of a product, in display order."""

    product = models.ForeignKey(
        Product,
        on_delete=models.CASCADE,
        related_name="attributes",
        verbose_name=_("Product"),
    )
    name = models.CharField(
        max_length=100,
        verbose_name=_("Name"),
    )
    position = models.PositiveSmallIntegerField(
        default=0,
        verbose_name=_("Position"),
    )
    is_variant_defining = models.BooleanField(
        default=False,
        verbose_name=_("Defines variants"),
        help_text=_("Values of this attribute distinguish the product's variants"),
    )

    class Meta:
        db_table = "variantman_product_attribute"
        verbose_name = _("Product Attribute")
        verbose_name_plural = _("Product Attributes")
        ordering = ["product", "position", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["product", "name"],
                name="variantman_unique_attribute_name",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.product.name} / {self.name}"

    def as_definition(self) -> AttributeDefinition:
        return AttributeDefinition(
            id=str(self.pk),
            name=self.name,
            is_variant_defining=self.is_variant_defining,
            position=self.position,
        )
