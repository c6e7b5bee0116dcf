# Generated manually: initial variant catalog schema

import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="Product",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "code",
                    models.CharField(
                        blank=True,
                        default="",
                        help_text="Optional, e.g. PREM-001. Prefix of variant codes.",
                        max_length=50,
                        verbose_name="Code",
                    ),
                ),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
            ],
            options={
                "verbose_name": "Product",
                "verbose_name_plural": "Products",
                "db_table": "variantman_product",
                "ordering": ["name"],
            },
        ),
        migrations.CreateModel(
            name="ProductAttribute",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=100, verbose_name="Name")),
                ("position", models.PositiveSmallIntegerField(default=0, verbose_name="Position")),
                (
                    "is_variant_defining",
                    models.BooleanField(
                        default=False,
                        help_text="Values of this attribute distinguish the product's variants",
                        verbose_name="Defines variants",
                    ),
                ),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attributes",
                        to="variantman.product",
                        verbose_name="Product",
                    ),
                ),
            ],
            options={
                "verbose_name": "Product Attribute",
                "verbose_name_plural": "Product Attributes",
                "db_table": "variantman_product_attribute",
                "ordering": ["product", "position", "id"],
            },
        ),
        migrations.CreateModel(
            name="Variant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=200, verbose_name="Name")),
                (
                    "code",
                    models.CharField(
                        help_text="Unique within the product, e.g. PREM-GOLD-500ML",
                        max_length=50,
                        verbose_name="Code",
                    ),
                ),
                ("is_default", models.BooleanField(default=False, verbose_name="Default")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("is_verified", models.BooleanField(default=False, verbose_name="Verified")),
                ("verified_at", models.DateTimeField(blank=True, null=True, verbose_name="Verified at")),
                (
                    "verified_by",
                    models.CharField(
                        blank=True,
                        help_text="Format: user:{username}",
                        max_length=100,
                        verbose_name="Verified by",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created at")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated at")),
                (
                    "product",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variants",
                        to="variantman.product",
                        verbose_name="Product",
                    ),
                ),
            ],
            options={
                "verbose_name": "Variant",
                "verbose_name_plural": "Variants",
                "db_table": "variantman_variant",
                "ordering": ["product", "-is_default", "created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="VariantAttributeValue",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("value", models.CharField(blank=True, max_length=200, verbose_name="Value")),
                (
                    "attribute",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="variant_values",
                        to="variantman.productattribute",
                        verbose_name="Attribute",
                    ),
                ),
                (
                    "variant",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="attribute_values",
                        to="variantman.variant",
                        verbose_name="Variant",
                    ),
                ),
            ],
            options={
                "verbose_name": "Variant Attribute Value",
                "verbose_name_plural": "Variant Attribute Values",
                "db_table": "variantman_variant_attribute_value",
            },
        ),
        migrations.AddConstraint(
            model_name="productattribute",
            constraint=models.UniqueConstraint(fields=("product", "name"), name="variantman_unique_attribute_name"),
        ),
        migrations.AddConstraint(
            model_name="variant",
            constraint=models.UniqueConstraint(fields=("product", "code"), name="variantman_unique_variant_code"),
        ),
        migrations.AddConstraint(
            model_name="variant",
            constraint=models.UniqueConstraint(
                condition=models.Q(("is_default", True)),
                fields=("product",),
                name="variantman_one_default_per_product",
            ),
        ),
        migrations.AddConstraint(
            model_name="variantattributevalue",
            constraint=models.UniqueConstraint(
                fields=("variant", "attribute"), name="variantman_unique_variant_attribute"
            ),
        ),
    ]
