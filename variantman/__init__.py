"""
Django Variantman - Product-variant identity engine.

Derives short, readable variant codes from product attributes and runs
the two-step wizard that defines variants while keeping one default per
product and an independent verified flag.

Usage:
    from variantman import variants, VariantError

    wizard = variants.open_add(product_id)
    wizard.select_attribute(color_id)
    wizard.set_value(color_id, "Golden")
    wizard.next()                # code "PREM-GOLD", name "Color: Golden"
    try:
        variant = wizard.save()
    except VariantError as e:
        print(e.as_dict())

    variants.set_default(variant.id)
    variants.verify(variant.id, True, user=request.user)
"""

from variantman.exceptions import (
    CodeCollisionError,
    CollaboratorError,
    VariantError,
    VariantValidationError,
)


def __getattr__(name):
    """Lazy import to avoid AppRegistryNotReady errors."""
    if name in ("variants", "Variants"):
        from variantman.service import Variants

        return Variants
    if name in ("VariantWizard", "WizardState", "WizardMode"):
        from variantman import wizard

        return getattr(wizard, name)
    if name in ("derive_code", "derive_descriptor_code"):
        from variantman import codes

        return getattr(codes, name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = [
    "variants",
    "Variants",
    "VariantWizard",
    "WizardState",
    "WizardMode",
    "derive_code",
    "derive_descriptor_code",
    "VariantError",
    "VariantValidationError",
    "CodeCollisionError",
    "CollaboratorError",
]
__version__ = "0.1.0"
