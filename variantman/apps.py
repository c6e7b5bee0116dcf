"""
Django Variantman app configuration.
"""

from django.apps import AppConfig
from django.utils.translation import gettext_lazy as _


class VariantmanConfig(AppConfig):
    """Variantman application configuration."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "variantman"
    verbose_name = _("Product Variants")
