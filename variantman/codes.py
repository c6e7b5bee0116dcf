"""
Variant code (SKU) derivation.

Two pure functions turn a product identity plus variant descriptors into a
short, human-readable code:

    derive_code(product, [("Color", "Golden"), ("Size", "500ml")])
    # "PREM-GOLD-500ML" for a product named "Premium Hair Shampoo"

    derive_descriptor_code(product, "Dry Scalp", color="Golden", size="500", size_unit="ml")
    # "PREM-DRY-SCAL-GOLD-500ML"

Same inputs always give the same code. Uniqueness is NOT handled here:
the wizard checks for collisions at commit time.
"""

from __future__ import annotations

import re
from typing import Iterable, Protocol

CODE_MAX_LENGTH = 50
SEPARATOR = "-"
FALLBACK_PREFIX = "PRD"
FALLBACK_TOKEN = "VAR"

TOKEN_LENGTH = 4
MEASURE_TOKEN_LENGTH = 8
DESCRIPTOR_MAX_LENGTH = 12
DESCRIPTOR_MAX_WORDS = 3

_ASCII_UPPER = str.maketrans("abcdefghijklmnopqrstuvwxyz", "ABCDEFGHIJKLMNOPQRSTUVWXYZ")
_NON_ALNUM = re.compile(r"[^A-Z0-9]")
_DIGITS = re.compile(r"[0-9]+")
_MEASURE = re.compile(r"[0-9]")


class HasIdentity(Protocol):
    name: str
    code: str | None


def clean(text: str | None) -> str:
    """Upper-case (ASCII only) and drop everything outside A-Z0-9."""
    if not text:
        return ""
    return _NON_ALNUM.sub("", text.translate(_ASCII_UPPER))


def base_prefix(product: HasIdentity) -> str:
    """
    Compute the code prefix for a product.

    Product code wins (text before its first "-"). Otherwise the first word
    of the name, cleaned and cut to 4 chars; when that is shorter than 3,
    the first 3 chars of the whole name. "PRD" when nothing is usable.
    """
    code = (getattr(product, "code", None) or "").strip()
    if code:
        return code.split(SEPARATOR, 1)[0] or FALLBACK_PREFIX

    name = (getattr(product, "name", None) or "").strip()
    if not name:
        return FALLBACK_PREFIX

    prefix = clean(name.split()[0])[:TOKEN_LENGTH]
    if len(prefix) < 3:
        prefix = clean(name[:3])
    return prefix or FALLBACK_PREFIX


def value_token(value: str | None) -> str:
    """
    Turn one attribute value into a code token ("" when nothing survives).

    Digits-only values are kept verbatim, quantities with a unit ("500ml")
    keep up to 8 chars, anything else keeps 4.
    """
    value = (value or "").strip()
    if not value:
        return ""
    if _DIGITS.fullmatch(value):
        return value
    if _MEASURE.match(value):
        return clean(value)[:MEASURE_TOKEN_LENGTH]
    return clean(value)[:TOKEN_LENGTH]


def _finish(parts: list[str]) -> str:
    return SEPARATOR.join(parts)[:CODE_MAX_LENGTH]


def derive_code(
    product: HasIdentity,
    attribute_values: Iterable[tuple[str, str]],
) -> str:
    """
    Derive a variant code from ordered (attribute name, value) pairs.

    Args:
        product: Anything with `name` and `code` (usually ProductIdentity)
        attribute_values: Pairs in definition order; blank values are skipped

    Returns:
        "{PREFIX}-{TOKEN}-..." capped at 50 chars, "{PREFIX}-VAR" without tokens
    """
    tokens = [token for _, value in attribute_values if (token := value_token(value))]
    return _finish([base_prefix(product), *(tokens or [FALLBACK_TOKEN])])


def _descriptor(name: str) -> str:
    words = [word for word in name.strip().split() if len(word) > 1][:DESCRIPTOR_MAX_WORDS]
    codes = [code for word in words if (code := clean(word[:TOKEN_LENGTH]))]
    descriptor = SEPARATOR.join(codes)[:DESCRIPTOR_MAX_LENGTH]

    if len(descriptor) < 2:
        descriptor = clean(name[:6]) or FALLBACK_TOKEN
    return descriptor


def derive_descriptor_code(
    product: HasIdentity,
    name: str | None,
    color: str | None = None,
    size: str | None = None,
    size_unit: str | None = None,
) -> str:
    """
    Derive a code for an ad-hoc variant from its name, color and size.

    Format: {PREFIX}-{NAME WORDS}[-{COLOR}][-{SIZE}{UNIT}]

    The color is skipped when it only repeats the variant name
    (e.g. a variant called "Golden" with color "golden").
    """
    parts = [base_prefix(product), _descriptor(name) if name else FALLBACK_TOKEN]

    if color and color.strip():
        if color.strip().lower() != (name or "").strip().lower():
            color_code = clean(color.strip()[:TOKEN_LENGTH])
            if color_code:
                parts.append(color_code)

    if size and size.strip():
        # Only the unit is upper-cased; letters typed into the size are dropped.
        size_code = _NON_ALNUM.sub("", size.strip() + (size_unit or "").translate(_ASCII_UPPER))
        size_code = size_code[:MEASURE_TOKEN_LENGTH]
        if size_code:
            parts.append(size_code)

    return _finish(parts)
