"""
Variantman Models.

- Product: catalog product, seeds variant codes
- ProductAttribute: attribute that may define variants
- Variant: concrete form of a product (unique code, one default)
- VariantAttributeValue: value of one attribute for one variant
"""

from variantman.models.product import Product, ProductAttribute
from variantman.models.variant import Variant, VariantAttributeValue

__all__ = [
    "Product",
    "ProductAttribute",
    "Variant",
    "VariantAttributeValue",
]
