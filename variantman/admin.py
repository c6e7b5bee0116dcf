"""
Variantman Admin - Basic Django admin for Product, ProductAttribute, Variant.

Variant flags that carry invariants (default, verified) are read-only here;
admin actions route them through the Variants service.
"""

from django.contrib import admin, messages
from django.utils.translation import gettext_lazy as _

from variantman.adapters.orm import OrmCatalogBackend
from variantman.exceptions import VariantError
from variantman.models import Product, ProductAttribute, Variant, VariantAttributeValue
from variantman.service import Variants


# ── Product ──


class ProductAttributeInline(admin.TabularInline):
    """Inline for product attributes."""

    model = ProductAttribute
    extra = 1
    fields = ("name", "position", "is_variant_defining")


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    """Admin for catalog products."""

    list_display = ("name", "code", "is_active", "created_at")
    list_filter = ("is_active",)
    search_fields = ("name", "code")
    inlines = [ProductAttributeInline]
    readonly_fields = ("created_at",)


# ── Variant ──


class VariantAttributeValueInline(admin.TabularInline):
    """Inline for the attribute values of a variant."""

    model = VariantAttributeValue
    extra = 0
    fields = ("attribute", "value")
    raw_id_fields = ("attribute",)


@admin.register(Variant)
class VariantAdmin(admin.ModelAdmin):
    """Admin for product variants."""

    list_display = ("code", "name", "product", "is_default", "is_active", "is_verified")
    list_filter = ("is_default", "is_active", "is_verified")
    search_fields = ("code", "name", "product__name")
    raw_id_fields = ("product",)
    inlines = [VariantAttributeValueInline]
    readonly_fields = ("is_default", "is_verified", "verified_at", "verified_by", "created_at", "updated_at")
    actions = ["make_default", "mark_verified", "mark_unverified"]

    def has_add_permission(self, request):
        # Variants are created through VariantWizard (API or Variants.open_add).
        return False

    def _run(self, request, queryset, func, done_message):
        backend = OrmCatalogBackend()
        count = 0
        for variant in queryset:
            try:
                func(str(variant.pk), backend)
                count += 1
            except VariantError as e:
                self.message_user(request, f"{variant.code}: {e}", level=messages.ERROR)
        if count:
            self.message_user(request, done_message % {"count": count}, level=messages.SUCCESS)

    @admin.action(description=_("Make default variant"))
    def make_default(self, request, queryset):
        self._run(
            request,
            queryset,
            lambda variant_id, backend: Variants.set_default(variant_id, backend=backend),
            _("%(count)d variant(s) made default."),
        )

    @admin.action(description=_("Mark as verified"))
    def mark_verified(self, request, queryset):
        self._run(
            request,
            queryset,
            lambda variant_id, backend: Variants.verify(variant_id, True, user=request.user, backend=backend),
            _("%(count)d variant(s) verified."),
        )

    @admin.action(description=_("Mark as not verified"))
    def mark_unverified(self, request, queryset):
        self._run(
            request,
            queryset,
            lambda variant_id, backend: Variants.verify(variant_id, False, user=request.user, backend=backend),
            _("%(count)d variant(s) unverified."),
        )
