"""
Attribute selection for a variant under construction.

Tracks which attributes define the variant and the value chosen for each.
Values live independently of the selection: deselecting an attribute keeps
its value, so selecting it again restores what the user typed.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from variantman.protocols.catalog import AttributeDefinition


def is_blank(value: str | None) -> bool:
    return not (value or "").strip()


@dataclass
class AttributeSelection:
    """
    Selected attribute ids plus the attribute -> value assignment.

    `definitions` fixes the order used for code and name derivation
    (the order supplied by the attribute store, not insertion order).
    """

    definitions: list[AttributeDefinition] = field(default_factory=list)
    selected_ids: set[str] = field(default_factory=set)
    values: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_definitions(
        cls,
        definitions: Iterable[AttributeDefinition],
        values: dict[str, str] | None = None,
        selected_ids: Iterable[str] | None = None,
    ) -> AttributeSelection:
        return cls(
            definitions=list(definitions),
            selected_ids=set(selected_ids or ()),
            values=dict(values or {}),
        )

    # ── Mutations ──

    def select(self, attribute_id: str) -> bool:
        """Mark an attribute as variant-defining. Returns True if it changed."""
        if attribute_id in self.selected_ids:
            return False
        self.selected_ids.add(attribute_id)
        return True

    def deselect(self, attribute_id: str) -> bool:
        """Unmark an attribute. Its value is retained."""
        if attribute_id not in self.selected_ids:
            return False
        self.selected_ids.discard(attribute_id)
        return True

    def set_value(self, attribute_id: str, value: str) -> bool:
        """Upsert a value. Blank values are stored as given."""
        if self.values.get(attribute_id) == value:
            return False
        self.values[attribute_id] = value
        return True

    # ── Queries ──

    def is_complete(self) -> bool:
        """True when something is selected and every selected id has a value."""
        if not self.selected_ids:
            return False
        return all(not is_blank(self.values.get(attr_id)) for attr_id in self.selected_ids)

    def missing_ids(self) -> list[str]:
        """Selected ids without a usable value, in definition order."""
        ordered = [d.id for d in self.definitions if d.id in self.selected_ids]
        ordered += sorted(self.selected_ids.difference(ordered))
        return [attr_id for attr_id in ordered if is_blank(self.values.get(attr_id))]

    def selected_definitions(self) -> list[AttributeDefinition]:
        """Selected attributes in definition order."""
        return [d for d in self.definitions if d.id in self.selected_ids]

    def ordered_values_for_code(self) -> list[tuple[str, str]]:
        """(attribute name, value) pairs for selected attributes with non-blank values."""
        return [
            (d.name, self.values[d.id])
            for d in self.selected_definitions()
            if not is_blank(self.values.get(d.id))
        ]

    def chosen_values(self) -> list[tuple[str, str]]:
        """(attribute id, trimmed value) pairs to persist for the variant."""
        return [
            (d.id, self.values[d.id].strip())
            for d in self.selected_definitions()
            if not is_blank(self.values.get(d.id))
        ]

    def suggested_name(self) -> str:
        """'Color: Golden - Size: 500ml' built from the selected values."""
        return " - ".join(f"{name}: {value.strip()}" for name, value in self.ordered_values_for_code())
