"""
Variantman API Serializers.
"""

from rest_framework import serializers

from variantman.codes import CODE_MAX_LENGTH
from variantman.models import Product, ProductAttribute, Variant


class ProductAttributeSerializer(serializers.ModelSerializer):
    """Serializer for ProductAttribute model."""

    class Meta:
        model = ProductAttribute
        fields = ["id", "name", "position", "is_variant_defining"]
        read_only_fields = fields


class ProductSerializer(serializers.ModelSerializer):
    """Serializer for Product model."""

    attributes = ProductAttributeSerializer(many=True, read_only=True)
    variant_count = serializers.SerializerMethodField()

    class Meta:
        model = Product
        fields = ["id", "name", "code", "is_active", "attributes", "variant_count"]
        read_only_fields = fields

    def get_variant_count(self, obj) -> int:
        return obj.variants.count()


class VariantSerializer(serializers.ModelSerializer):
    """Read serializer for Variant model."""

    product_name = serializers.CharField(source="product.name", read_only=True)
    attribute_values = serializers.SerializerMethodField()

    class Meta:
        model = Variant
        fields = [
            "id",
            "product",
            "product_name",
            "name",
            "code",
            "is_default",
            "is_active",
            "is_verified",
            "verified_at",
            "verified_by",
            "attribute_values",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields

    def get_attribute_values(self, obj) -> dict:
        return {
            str(row.attribute_id): row.value
            for row in obj.attribute_values.all()
            if row.value.strip()
        }


class VariantWriteSerializer(serializers.Serializer):
    """
    Input for creating/updating a variant through the wizard.

    `attributes` maps attribute id -> value; its keys are the selected
    (variant-defining) attributes. Omitted name/code are synthesized.
    """

    product = serializers.IntegerField(required=False)
    attributes = serializers.DictField(
        child=serializers.CharField(allow_blank=True, max_length=200),
        required=False,
    )
    name = serializers.CharField(required=False, allow_blank=True, max_length=200)
    code = serializers.CharField(required=False, allow_blank=True, max_length=CODE_MAX_LENGTH)
    is_default = serializers.BooleanField(required=False)
    is_active = serializers.BooleanField(required=False)
    regenerate_code = serializers.BooleanField(required=False, default=False)


class VariantVerifySerializer(serializers.Serializer):
    """Input for the verify action."""

    verified = serializers.BooleanField(default=True)


class SuggestCodeSerializer(serializers.Serializer):
    """Input for the suggest-code action."""

    name = serializers.CharField(max_length=200)
    color = serializers.CharField(required=False, allow_blank=True, max_length=100)
    size = serializers.CharField(required=False, allow_blank=True, max_length=50)
    size_unit = serializers.CharField(required=False, allow_blank=True, max_length=20)
