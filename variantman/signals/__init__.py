"""
Variantman Signals.

Catalog changes are announced via signals so that search indexes,
storefront caches and audit trails can react without coupling.

Signals:
    variant_committed: A wizard draft was saved (created or updated)
    default_changed: A product's default variant changed
    variant_verified: The verified flag of a variant changed
    variant_deleted: A variant was removed from the catalog
"""

from django.dispatch import Signal

# Wizard commit finished
# Sent by VariantWizard.save()
# Args: variant (VariantRecord), created (bool), attribute_values (list of (id, value))
variant_committed = Signal()

# Default variant changed outside the wizard
# Sent by Variants.set_default() and Variants.delete()
# Args: product_id, variant (VariantRecord, the new default)
default_changed = Signal()

# Verified flag toggled by a privileged actor
# Sent by Variants.verify()
# Args: variant (VariantRecord), verified (bool), verified_by (str)
variant_verified = Signal()

# Variant deleted
# Sent by Variants.delete()
# Args: variant (VariantRecord), promoted (VariantRecord or None)
variant_deleted = Signal()

__all__ = ["variant_committed", "default_changed", "variant_verified", "variant_deleted"]
