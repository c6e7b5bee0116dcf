"""
Variantman Exceptions.

All variantman errors derive from VariantError for consistent handling.
The subclasses tell callers how to react:

    VariantValidationError  - recoverable, the wizard stays where it is
    CodeCollisionError      - recoverable, pick another code or regenerate
    CollaboratorError       - the catalog/attribute store failed, retry or cancel
"""

from typing import Any


class VariantError(Exception):
    """
    Base exception for all Variantman errors.

    Usage:
        raise VariantError('INVALID_STATE', current='committed', event='next')

    Attributes:
        code: Error code (INVALID_STATE, CODE_TAKEN, etc.)
        details: Additional context as keyword arguments
    """

    def __init__(self, code: str, **details: Any):
        self.code = code
        self.details = details
        message = f"{code}: {details}" if details else code
        super().__init__(message)

    def as_dict(self) -> dict:
        """Return error as dictionary for API responses."""
        return {"code": self.code, **self.details}

    def __str__(self) -> str:
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{type(self).__name__}({self.code}: {details_str})"
        return f"{type(self).__name__}({self.code})"


class VariantValidationError(VariantError):
    """
    A step gate refused the draft (incomplete selection, blank name/code).

    `message` is a short user-facing sentence; the wizard state is unchanged.
    """

    def __init__(self, code: str, message: str = "", **details: Any):
        self.message = message
        super().__init__(code, **details)

    def as_dict(self) -> dict:
        data = super().as_dict()
        if self.message:
            data["message"] = self.message
        return data


class CodeCollisionError(VariantError):
    """The code is already used by another variant of the same product."""


class CollaboratorError(VariantError):
    """
    The external catalog/attribute store failed during a commit.

    The original exception is chained as __cause__ and its text is kept
    in details["error"].
    """


# Common error codes
# INVALID_STATE: Event not allowed in the current wizard state
# INCOMPLETE_SELECTION: No attribute selected or a selected attribute has no value
# UNKNOWN_ATTRIBUTE: Attribute id does not belong to the product
# BLANK_NAME: Variant name is blank at save
# BLANK_CODE: Variant code is blank at save
# CODE_TAKEN: Code already used by a sibling variant
# COMMIT_FAILED: Catalog/attribute store raised during commit
# PRODUCT_NOT_FOUND: Product does not exist
# VARIANT_NOT_FOUND: Variant does not exist
