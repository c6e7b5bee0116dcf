"""
Variant definition wizard.

A two-step state machine that turns attribute choices into a committed
variant:

    SELECT_ATTRIBUTES --next--> NAME_AND_CODE --save--> COMMITTED
            ^                        |
            +-------previous---------+
    (any non-terminal state) --cancel--> CANCELLED

Usage:
    from variantman.wizard import VariantWizard

    wizard = VariantWizard.open_add(backend, product_id)
    wizard.select_attribute(color.id)
    wizard.set_value(color.id, "Golden")
    wizard.next()            # code/name synthesized if blank
    wizard.set_default(True)
    variant = wizard.save()  # single unit of work against the catalog

The draft is the only state carried between steps. A UI renders
`wizard.snapshot()` and dispatches events into the methods below.
"""

import logging
from dataclasses import dataclass, field

from django.db import models
from django.utils.translation import gettext_lazy as _

from variantman.codes import derive_code
from variantman.conf import get_regenerate_delay, get_scheduler
from variantman.exceptions import (
    CodeCollisionError,
    CollaboratorError,
    VariantError,
    VariantValidationError,
)
from variantman.protocols.catalog import CatalogBackend, ProductIdentity, VariantRecord
from variantman.scheduling import PendingTask, Scheduler
from variantman.selection import AttributeSelection, is_blank

logger = logging.getLogger(__name__)


class WizardState(models.TextChoices):
    """Wizard lifecycle state."""

    SELECT_ATTRIBUTES = "select_attributes", _("Select attributes")
    NAME_AND_CODE = "name_and_code", _("Name and code")
    COMMITTED = "committed", _("Committed")
    CANCELLED = "cancelled", _("Cancelled")


class WizardMode(models.TextChoices):
    ADD = "add", _("Add")
    EDIT = "edit", _("Edit")


OPEN_STATES = (WizardState.SELECT_ATTRIBUTES, WizardState.NAME_AND_CODE)


@dataclass
class VariantDraft:
    """Working state of the variant under construction."""

    name: str = ""
    code: str = ""
    is_default: bool = False
    is_active: bool = True
    selection: AttributeSelection = field(default_factory=AttributeSelection)

    @property
    def selected_attribute_ids(self) -> set[str]:
        return self.selection.selected_ids

    @property
    def attribute_values(self) -> dict[str, str]:
        return self.selection.values


class VariantWizard:
    """
    One wizard session over one product.

    Add mode gates SELECT_ATTRIBUTES -> NAME_AND_CODE on a complete
    selection. Edit mode navigates freely so legacy variants without
    attribute values stay editable.
    """

    def __init__(
        self,
        backend: CatalogBackend,
        product_id: str,
        product: ProductIdentity,
        draft: VariantDraft,
        *,
        mode: str = WizardMode.ADD,
        variant: VariantRecord | None = None,
        persisted_values: dict[str, str] | None = None,
        scheduler: Scheduler | None = None,
        delay: float | None = None,
    ):
        self.backend = backend
        self.product_id = product_id
        self.product = product
        self.draft: VariantDraft | None = draft
        self.mode = WizardMode(mode)
        self.variant = variant
        self.state = WizardState.SELECT_ATTRIBUTES
        # Persisted codes are never replaced silently; regenerate_code() is explicit.
        self.code_edited = self.mode == WizardMode.EDIT and not is_blank(draft.code)
        self._persisted_ids = {
            attr_id for attr_id, value in (persisted_values or {}).items() if not is_blank(value)
        }
        self._regeneration = PendingTask(
            scheduler if scheduler is not None else get_scheduler(),
            get_regenerate_delay() if delay is None else delay,
        )
        self._committing = False

    # ══════════════════════════════════════════════════════════════
    # OPENING
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def open_add(cls, backend: CatalogBackend, product_id: str, **kwargs) -> "VariantWizard":
        """
        Open the wizard to create a new variant.

        Attributes already flagged as variant-defining start selected.
        """
        product = backend.get_product(product_id)
        if product is None:
            raise VariantError("PRODUCT_NOT_FOUND", product_id=product_id)

        definitions = backend.fetch_attribute_definitions(product_id)
        selection = AttributeSelection.from_definitions(
            definitions,
            selected_ids=[d.id for d in definitions if d.is_variant_defining],
        )
        return cls(backend, product_id, product, VariantDraft(selection=selection), **kwargs)

    @classmethod
    def open_edit(cls, backend: CatalogBackend, variant_id: str, **kwargs) -> "VariantWizard":
        """
        Open the wizard on an existing variant.

        Attributes with a non-blank persisted value start selected.
        """
        variant = backend.get_variant(variant_id)
        if variant is None:
            raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

        product = backend.get_product(variant.product_id)
        if product is None:
            raise VariantError("PRODUCT_NOT_FOUND", product_id=variant.product_id)

        definitions = backend.fetch_attribute_definitions(variant.product_id)
        values = backend.fetch_existing_variant_values(variant.id)
        known_ids = {d.id for d in definitions}
        selection = AttributeSelection.from_definitions(
            definitions,
            values=values,
            selected_ids=[
                attr_id for attr_id, value in values.items()
                if attr_id in known_ids and not is_blank(value)
            ],
        )
        draft = VariantDraft(
            name=variant.name,
            code=variant.code,
            is_default=variant.is_default,
            is_active=variant.is_active,
            selection=selection,
        )
        return cls(
            backend,
            variant.product_id,
            product,
            draft,
            mode=WizardMode.EDIT,
            variant=variant,
            persisted_values=values,
            **kwargs,
        )

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @property
    def is_open(self) -> bool:
        return self.state in OPEN_STATES

    @property
    def is_committing(self) -> bool:
        return self._committing

    @property
    def regeneration_pending(self) -> bool:
        return self._regeneration.pending

    def can_advance(self) -> bool:
        """Whether next() would pass its gate right now."""
        if self.state != WizardState.SELECT_ATTRIBUTES:
            return False
        return self.mode == WizardMode.EDIT or self.draft.selection.is_complete()

    def derive(self) -> str:
        """Code the current selection would produce."""
        return derive_code(self.product, self.draft.selection.ordered_values_for_code())

    def snapshot(self) -> dict:
        """Plain view of (state, draft) for rendering."""
        data = {
            "state": str(self.state),
            "mode": str(self.mode),
            "product_id": self.product_id,
            "variant_id": self.variant.id if self.variant else None,
            "committing": self._committing,
        }
        if self.draft is None:
            return data

        selection = self.draft.selection
        data.update(
            {
                "name": self.draft.name,
                "code": self.draft.code,
                "is_default": self.draft.is_default,
                "is_active": self.draft.is_active,
                "code_edited": self.code_edited,
                "can_advance": self.can_advance(),
                "attributes": [
                    {
                        "id": d.id,
                        "name": d.name,
                        "selected": d.id in selection.selected_ids,
                        "value": selection.values.get(d.id, ""),
                    }
                    for d in selection.definitions
                ],
            }
        )
        return data

    # ══════════════════════════════════════════════════════════════
    # STEP 1 EVENTS
    # ══════════════════════════════════════════════════════════════

    def select_attribute(self, attribute_id: str) -> None:
        self._require(WizardState.SELECT_ATTRIBUTES, event="select_attribute")
        self._require_attribute(attribute_id)
        if self.draft.selection.select(attribute_id):
            self._schedule_regeneration()

    def deselect_attribute(self, attribute_id: str) -> None:
        self._require(WizardState.SELECT_ATTRIBUTES, event="deselect_attribute")
        if self.draft.selection.deselect(attribute_id):
            self._schedule_regeneration()

    def set_value(self, attribute_id: str, value: str) -> None:
        self._require(WizardState.SELECT_ATTRIBUTES, event="set_value")
        self._require_attribute(attribute_id)
        if self.draft.selection.set_value(attribute_id, value):
            self._schedule_regeneration()

    def _require_attribute(self, attribute_id: str) -> None:
        if not any(d.id == attribute_id for d in self.draft.selection.definitions):
            raise VariantValidationError(
                "UNKNOWN_ATTRIBUTE",
                message="Attribute does not belong to this product.",
                attribute_ids=[attribute_id],
            )

    # ══════════════════════════════════════════════════════════════
    # DRAFT FIELDS (any open step)
    # ══════════════════════════════════════════════════════════════

    def set_name(self, name: str) -> None:
        self._require(*OPEN_STATES, event="set_name")
        self.draft.name = name

    def set_code(self, code: str) -> None:
        """Manual code edit. Clearing the code hands it back to automatic derivation."""
        self._require(*OPEN_STATES, event="set_code")
        self._regeneration.cancel()
        self.draft.code = code
        self.code_edited = not is_blank(code)

    def set_default(self, is_default: bool) -> None:
        self._require(*OPEN_STATES, event="set_default")
        self.draft.is_default = bool(is_default)

    def set_active(self, is_active: bool) -> None:
        self._require(*OPEN_STATES, event="set_active")
        self.draft.is_active = bool(is_active)

    def regenerate_code(self) -> str:
        """Explicitly replace the code with a freshly derived one."""
        self._require(*OPEN_STATES, event="regenerate_code")
        self._regeneration.cancel()
        self.draft.code = self.derive()
        self.code_edited = False
        return self.draft.code

    # ══════════════════════════════════════════════════════════════
    # TRANSITIONS
    # ══════════════════════════════════════════════════════════════

    def next(self) -> WizardState:
        """
        SELECT_ATTRIBUTES -> NAME_AND_CODE.

        Raises:
            VariantValidationError: INCOMPLETE_SELECTION (add mode only)
        """
        self._require(WizardState.SELECT_ATTRIBUTES, event="next")
        selection = self.draft.selection

        if self.mode == WizardMode.ADD and not selection.is_complete():
            missing = selection.missing_ids()
            if not selection.selected_ids:
                message = "Select at least one attribute that defines this variant."
            else:
                message = "Every selected attribute needs a value."
            logger.warning(
                f"Wizard for product {self.product_id}: step 1 incomplete",
                extra={"product_id": self.product_id, "missing": missing},
            )
            raise VariantValidationError("INCOMPLETE_SELECTION", message=message, missing=missing)

        self._regeneration.flush()

        if is_blank(self.draft.code):
            self.draft.code = self.derive()
            self.code_edited = False
        if self.mode == WizardMode.ADD and is_blank(self.draft.name):
            self.draft.name = selection.suggested_name()

        self.state = WizardState.NAME_AND_CODE
        return self.state

    def previous(self) -> WizardState:
        """NAME_AND_CODE -> SELECT_ATTRIBUTES. The draft is kept as is."""
        self._require(WizardState.NAME_AND_CODE, event="previous")
        self.state = WizardState.SELECT_ATTRIBUTES
        return self.state

    def cancel(self) -> None:
        """
        Discard the draft.

        A commit already in flight is not retracted, but its result will
        not move the wizard to COMMITTED.
        """
        if self.state == WizardState.CANCELLED:
            return
        self._require(*OPEN_STATES, event="cancel")

        self._regeneration.cancel()
        self.state = WizardState.CANCELLED
        self.draft = None
        logger.info(
            f"Wizard for product {self.product_id} cancelled",
            extra={"product_id": self.product_id, "in_flight": self._committing},
        )

    def save(self) -> VariantRecord | None:
        """
        NAME_AND_CODE -> COMMITTED.

        Returns:
            The committed variant, or None when a commit is already in flight

        Raises:
            VariantValidationError: BLANK_NAME / BLANK_CODE
            CodeCollisionError: CODE_TAKEN (wizard stays in NAME_AND_CODE)
            CollaboratorError: COMMIT_FAILED (wizard stays in NAME_AND_CODE)
        """
        if self._committing:
            logger.warning(
                f"Ignoring save for product {self.product_id}: commit in flight",
                extra={"product_id": self.product_id},
            )
            return None

        self._require(WizardState.NAME_AND_CODE, event="save")

        name = self.draft.name.strip()
        code = self.draft.code.strip()
        if not name:
            raise VariantValidationError("BLANK_NAME", message="Variant name is required.")
        if not code:
            raise VariantValidationError("BLANK_CODE", message="Variant code is required.")

        self._committing = True
        try:
            variant, values = self._commit(name, code)
        finally:
            self._committing = False

        created = self.mode == WizardMode.ADD

        if self.state == WizardState.CANCELLED:
            logger.info(
                f"Variant {variant.code} committed after its wizard was cancelled",
                extra={"variant_id": variant.id, "product_id": self.product_id},
            )
            return variant

        self.state = WizardState.COMMITTED
        self.variant = variant
        self.draft = None

        logger.info(
            f"Variant {variant.code} {'created' if created else 'updated'} for product {self.product_id}",
            extra={
                "variant_id": variant.id,
                "product_id": self.product_id,
                "code": variant.code,
                "is_default": variant.is_default,
            },
        )

        from variantman.signals import variant_committed

        variant_committed.send(
            sender=self.__class__,
            variant=variant,
            created=created,
            attribute_values=values,
        )
        return variant

    # ══════════════════════════════════════════════════════════════
    # INTERNALS
    # ══════════════════════════════════════════════════════════════

    def _require(self, *states: WizardState, event: str) -> None:
        if self.state not in states:
            raise VariantError("INVALID_STATE", current=str(self.state), event=event)

    def _schedule_regeneration(self) -> None:
        if self.code_edited:
            return
        self._regeneration.replace(self._apply_regeneration)

    def _apply_regeneration(self) -> None:
        if self.state != WizardState.SELECT_ATTRIBUTES or self.code_edited:
            return
        self.draft.code = self.derive()
        logger.debug(f"Regenerated code {self.draft.code} for product {self.product_id}")

    def _resolve_default(self, requested: bool, current: VariantRecord | None, siblings) -> bool:
        if not siblings or requested:
            return True
        # The current default keeps its flag until another variant takes it.
        if current is not None and current.is_default:
            return not any(v.is_default for v in siblings)
        return False

    def _commit(self, name: str, code: str) -> tuple[VariantRecord, list[tuple[str, str]]]:
        backend = self.backend
        selection = self.draft.selection
        requested_default = self.draft.is_default
        is_active = self.draft.is_active
        selected_ids = set(selection.selected_ids)
        variant_id = self.variant.id if self.variant else None

        values = selection.chosen_values()
        chosen_ids = {attr_id for attr_id, value in values}
        # Values dropped in edit mode are blanked so they stop counting as selected.
        cleared = [(attr_id, "") for attr_id in sorted(self._persisted_ids - chosen_ids)]

        try:
            with backend.atomic():
                variants = backend.list_variants(self.product_id)
                siblings = [v for v in variants if v.id != variant_id]
                current = next((v for v in variants if v.id == variant_id), None)

                if variant_id is not None and current is None:
                    raise VariantError("VARIANT_NOT_FOUND", variant_id=variant_id)

                taken = next((v for v in siblings if v.code == code), None)
                if taken is not None:
                    logger.warning(
                        f"Code {code} already used by variant {taken.id}",
                        extra={"product_id": self.product_id, "code": code},
                    )
                    raise CodeCollisionError("CODE_TAKEN", variant_code=code, variant_id=taken.id)

                is_default = self._resolve_default(requested_default, current, siblings)
                if is_default and any(v.is_default for v in siblings):
                    backend.clear_default(self.product_id, exclude_variant_id=variant_id)

                if variant_id is None:
                    variant = backend.create_variant(
                        self.product_id, name, code, is_default, is_active=is_active
                    )
                else:
                    variant = backend.update_variant(
                        variant_id, name=name, code=code, is_default=is_default, is_active=is_active
                    )

                if values or cleared:
                    backend.bulk_upsert_attribute_values(variant.id, values + cleared)

                for definition in backend.fetch_attribute_definitions(self.product_id):
                    wanted = definition.id in selected_ids
                    if definition.is_variant_defining != wanted:
                        backend.set_attribute_variant_defining(definition.id, wanted)

        except VariantError:
            raise
        except Exception as e:
            logger.error(
                f"Commit failed for product {self.product_id}: {e}",
                extra={"product_id": self.product_id, "variant_id": variant_id, "code": code},
            )
            raise CollaboratorError(
                "COMMIT_FAILED", product_id=self.product_id, error=str(e)
            ) from e

        return variant, values
