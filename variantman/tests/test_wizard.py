"""
Tests for VariantWizard (variantman.wizard).

Runs against InMemoryCatalogBackend. Verifies that:
- add mode gates step 1 on a complete selection
- codes and names are synthesized when blank
- the first variant becomes the default and defaults stay exclusive
- collisions and collaborator failures leave the wizard in step 2
- edit mode round-trips persisted variants
- cancel, re-entrant save and debounced regeneration behave
"""

import pytest

from variantman.adapters.memory import InMemoryCatalogBackend
from variantman.exceptions import (
    CodeCollisionError,
    CollaboratorError,
    VariantError,
    VariantValidationError,
)
from variantman.scheduling import ImmediateScheduler
from variantman.signals import variant_committed
from variantman.wizard import VariantWizard, WizardMode, WizardState


class ManualScheduler:
    """Collects callbacks; run_all() fires the ones not cancelled."""

    class Handle:
        def __init__(self, callback):
            self.callback = callback
            self.cancelled = False

        def cancel(self):
            self.cancelled = True

    def __init__(self):
        self.handles = []

    def call_later(self, delay, callback):
        handle = self.Handle(callback)
        self.handles.append(handle)
        return handle

    def run_all(self):
        handles, self.handles = self.handles, []
        for handle in handles:
            if not handle.cancelled:
                handle.callback()


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════


@pytest.fixture
def backend():
    backend = InMemoryCatalogBackend()
    backend.add_product("Premium Hair Shampoo", product_id="shampoo")
    backend.add_attribute("shampoo", "Color", attribute_id="color")
    backend.add_attribute("shampoo", "Size", attribute_id="size")
    backend.add_attribute("shampoo", "Scent", attribute_id="scent")
    return backend


def open_add(backend, **kwargs):
    kwargs.setdefault("scheduler", ImmediateScheduler())
    return VariantWizard.open_add(backend, "shampoo", **kwargs)


def open_edit(backend, variant_id, **kwargs):
    kwargs.setdefault("scheduler", ImmediateScheduler())
    return VariantWizard.open_edit(backend, variant_id, **kwargs)


def add_variant(backend, values, **fields):
    """Run the whole add flow and return the committed variant."""
    wizard = open_add(backend)
    for attribute_id, value in values.items():
        wizard.select_attribute(attribute_id)
        wizard.set_value(attribute_id, value)
    wizard.next()
    if "name" in fields:
        wizard.set_name(fields["name"])
    if "code" in fields:
        wizard.set_code(fields["code"])
    if "is_default" in fields:
        wizard.set_default(fields["is_default"])
    if "is_active" in fields:
        wizard.set_active(fields["is_active"])
    return wizard.save()


def defaults(backend, product_id="shampoo"):
    return [v.id for v in backend.list_variants(product_id) if v.is_default]


# ═══════════════════════════════════════════════════════════════════
# Opening
# ═══════════════════════════════════════════════════════════════════


class TestOpen:
    def test_unknown_product(self, backend):
        with pytest.raises(VariantError) as exc:
            VariantWizard.open_add(backend, "nope", scheduler=ImmediateScheduler())
        assert exc.value.code == "PRODUCT_NOT_FOUND"

    def test_unknown_variant(self, backend):
        with pytest.raises(VariantError) as exc:
            VariantWizard.open_edit(backend, "nope", scheduler=ImmediateScheduler())
        assert exc.value.code == "VARIANT_NOT_FOUND"

    def test_add_starts_in_step_one(self, backend):
        wizard = open_add(backend)

        assert wizard.state == WizardState.SELECT_ATTRIBUTES
        assert wizard.mode == WizardMode.ADD
        assert wizard.draft.name == ""
        assert wizard.draft.code == ""
        assert wizard.draft.selected_attribute_ids == set()

    def test_add_preselects_variant_defining_attributes(self, backend):
        backend.set_attribute_variant_defining("size", True)

        wizard = open_add(backend)

        assert wizard.draft.selected_attribute_ids == {"size"}

    def test_uses_configured_scheduler_by_default(self, backend):
        wizard = VariantWizard.open_add(backend, "shampoo")
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")

        assert wizard.draft.code == "PREM-GOLD"


# ═══════════════════════════════════════════════════════════════════
# Step 1 gate
# ═══════════════════════════════════════════════════════════════════


class TestStepOneGate:
    def test_nothing_selected(self, backend):
        wizard = open_add(backend)

        with pytest.raises(VariantValidationError) as exc:
            wizard.next()

        assert exc.value.code == "INCOMPLETE_SELECTION"
        assert exc.value.message
        assert wizard.state == WizardState.SELECT_ATTRIBUTES
        assert not wizard.can_advance()

    def test_selected_attribute_without_value(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.select_attribute("size")
        wizard.set_value("size", "   ")

        with pytest.raises(VariantValidationError) as exc:
            wizard.next()

        assert exc.value.details["missing"] == ["size"]
        assert wizard.state == WizardState.SELECT_ATTRIBUTES

    def test_complete_selection_advances(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")

        assert wizard.can_advance()
        assert wizard.next() == WizardState.NAME_AND_CODE

    def test_attribute_of_another_product_is_refused(self, backend):
        other = backend.add_product("Conditioner", product_id="conditioner")
        backend.add_attribute(other, "Size", attribute_id="foreign")
        wizard = open_add(backend)

        with pytest.raises(VariantValidationError) as exc:
            wizard.select_attribute("foreign")
        assert exc.value.code == "UNKNOWN_ATTRIBUTE"
        assert exc.value.details["attribute_ids"] == ["foreign"]

        with pytest.raises(VariantValidationError):
            wizard.set_value("foreign", "XL")

        assert wizard.draft.selected_attribute_ids == set()
        assert wizard.draft.attribute_values == {}
        assert not wizard.can_advance()

    def test_edit_mode_advances_without_attributes(self, backend):
        variant = backend.create_variant("shampoo", "Legacy", "LEG-1", True)
        wizard = open_edit(backend, variant.id)

        assert wizard.can_advance()
        assert wizard.next() == WizardState.NAME_AND_CODE
        assert wizard.draft.code == "LEG-1"


# ═══════════════════════════════════════════════════════════════════
# Name and code synthesis
# ═══════════════════════════════════════════════════════════════════


class TestSynthesis:
    def test_code_follows_selection(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.select_attribute("size")
        wizard.set_value("size", "500ml")

        assert wizard.draft.code == "PREM-GOLD-500ML"

        wizard.deselect_attribute("color")
        assert wizard.draft.code == "PREM-500ML"

    def test_next_fills_blank_name_and_code(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("size")
        wizard.select_attribute("color")
        wizard.set_value("size", "500ml")
        wizard.set_value("color", "Golden")
        wizard.set_code("")

        wizard.next()

        assert wizard.draft.code == "PREM-GOLD-500ML"
        assert wizard.draft.name == "Color: Golden - Size: 500ml"

    def test_next_keeps_typed_name(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.set_name("Golden Edition")

        wizard.next()

        assert wizard.draft.name == "Golden Edition"

    def test_manual_code_is_not_overwritten(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_code("CUSTOM-1")
        wizard.set_value("color", "Golden")

        wizard.next()

        assert wizard.draft.code == "CUSTOM-1"
        assert wizard.code_edited

    def test_regenerate_code_replaces_manual_code(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.set_code("CUSTOM-1")
        wizard.next()

        assert wizard.regenerate_code() == "PREM-GOLD"
        assert not wizard.code_edited

    def test_previous_keeps_draft(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        wizard.set_name("Golden Edition")

        assert wizard.previous() == WizardState.SELECT_ATTRIBUTES
        assert wizard.draft.name == "Golden Edition"
        assert wizard.draft.attribute_values == {"color": "Golden"}


# ═══════════════════════════════════════════════════════════════════
# Debounced regeneration
# ═══════════════════════════════════════════════════════════════════


class TestDebounce:
    def test_regeneration_waits_for_scheduler(self, backend):
        scheduler = ManualScheduler()
        wizard = open_add(backend, scheduler=scheduler, delay=0.3)

        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.select_attribute("size")
        wizard.set_value("size", "500ml")

        assert wizard.draft.code == ""
        assert wizard.regeneration_pending

        scheduler.run_all()

        assert wizard.draft.code == "PREM-GOLD-500ML"
        assert not wizard.regeneration_pending

    def test_only_last_request_runs(self, backend):
        scheduler = ManualScheduler()
        wizard = open_add(backend, scheduler=scheduler)
        calls = []
        wizard.derive = lambda: calls.append(1) or "X"

        wizard.select_attribute("color")
        wizard.set_value("color", "G")
        wizard.set_value("color", "Go")
        scheduler.run_all()

        assert calls == [1]

    def test_next_flushes_pending_regeneration(self, backend):
        scheduler = ManualScheduler()
        wizard = open_add(backend, scheduler=scheduler)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")

        wizard.next()

        assert wizard.draft.code == "PREM-GOLD"
        assert not wizard.regeneration_pending

    def test_late_callback_ignored_after_leaving_step_one(self, backend):
        class Uncancellable(ManualScheduler):
            class Handle(ManualScheduler.Handle):
                def cancel(self):
                    pass

        scheduler = Uncancellable()
        wizard = open_add(backend, scheduler=scheduler)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        wizard.set_code("MANUAL")

        scheduler.run_all()

        assert wizard.draft.code == "MANUAL"

    def test_cancel_drops_pending_regeneration(self, backend):
        scheduler = ManualScheduler()
        wizard = open_add(backend, scheduler=scheduler)
        wizard.select_attribute("color")

        wizard.cancel()
        scheduler.run_all()

        assert not wizard.regeneration_pending
        assert wizard.draft is None


# ═══════════════════════════════════════════════════════════════════
# Commit
# ═══════════════════════════════════════════════════════════════════


class TestCommit:
    def test_first_variant_is_default(self, backend):
        variant = add_variant(backend, {"color": "Golden", "size": "500ml"}, is_default=False)

        assert variant.is_default
        assert variant.code == "PREM-GOLD-500ML"
        assert variant.name == "Color: Golden - Size: 500ml"
        assert not variant.is_verified

    def test_commit_persists_values_and_flags(self, backend):
        variant = add_variant(backend, {"color": "Golden", "size": "500ml"})

        assert backend.fetch_existing_variant_values(variant.id) == {"color": "Golden", "size": "500ml"}
        flags = {d.id: d.is_variant_defining for d in backend.fetch_attribute_definitions("shampoo")}
        assert flags == {"color": True, "size": True, "scent": False}

    def test_wizard_ends_committed(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        variant = wizard.save()

        assert wizard.state == WizardState.COMMITTED
        assert wizard.variant == variant
        assert wizard.draft is None
        assert not wizard.is_open

    def test_name_and_code_are_trimmed(self, backend):
        variant = add_variant(backend, {"color": "Golden"}, name="  Golden  ", code=" GLD-1 ")

        assert variant.name == "Golden"
        assert variant.code == "GLD-1"

    def test_second_variant_not_default_unless_asked(self, backend):
        first = add_variant(backend, {"color": "Golden"})
        second = add_variant(backend, {"color": "Silver"})

        assert not second.is_default
        assert defaults(backend) == [first.id]

    def test_new_default_replaces_old(self, backend):
        add_variant(backend, {"color": "Golden"})
        second = add_variant(backend, {"color": "Silver"}, is_default=True)

        assert defaults(backend) == [second.id]

    def test_blank_name(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        wizard.set_name("   ")

        with pytest.raises(VariantValidationError) as exc:
            wizard.save()

        assert exc.value.code == "BLANK_NAME"
        assert wizard.state == WizardState.NAME_AND_CODE

    def test_blank_code(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        wizard.set_code("  ")

        with pytest.raises(VariantValidationError) as exc:
            wizard.save()

        assert exc.value.code == "BLANK_CODE"
        assert backend.list_variants("shampoo") == []

    def test_signal_sent(self, backend):
        received = []

        def receiver(sender, variant, created, attribute_values, **kwargs):
            received.append((variant.code, created, attribute_values))

        variant_committed.connect(receiver)
        try:
            add_variant(backend, {"color": "Golden"})
        finally:
            variant_committed.disconnect(receiver)

        assert received == [("PREM-GOLD", True, [("color", "Golden")])]


class TestCollision:
    def test_code_taken_keeps_step_two(self, backend):
        existing = add_variant(backend, {"color": "Golden"})

        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        with pytest.raises(CodeCollisionError) as exc:
            wizard.save()

        assert exc.value.code == "CODE_TAKEN"
        assert exc.value.details["variant_id"] == existing.id
        assert exc.value.details["variant_code"] == "PREM-GOLD"
        assert wizard.state == WizardState.NAME_AND_CODE
        assert len(backend.list_variants("shampoo")) == 1

        wizard.set_code("PREM-GOLD-2")
        assert wizard.save().code == "PREM-GOLD-2"

    def test_editing_keeps_own_code(self, backend):
        variant = add_variant(backend, {"color": "Golden"})

        wizard = open_edit(backend, variant.id)
        wizard.next()
        wizard.set_name("Renamed")

        assert wizard.save().code == variant.code


class TestCollaboratorFailure:
    def test_failure_is_wrapped_and_rolled_back(self, backend, monkeypatch):
        def broken(variant_id, values):
            raise RuntimeError("attribute store down")

        monkeypatch.setattr(backend, "bulk_upsert_attribute_values", broken)

        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        with pytest.raises(CollaboratorError) as exc:
            wizard.save()

        assert exc.value.code == "COMMIT_FAILED"
        assert isinstance(exc.value.__cause__, RuntimeError)
        assert "attribute store down" in exc.value.details["error"]
        assert wizard.state == WizardState.NAME_AND_CODE
        assert not wizard.is_committing
        assert backend.list_variants("shampoo") == []

    def test_retry_after_failure(self, backend, monkeypatch):
        calls = []
        original = backend.bulk_upsert_attribute_values

        def flaky(variant_id, values):
            calls.append(variant_id)
            if len(calls) == 1:
                raise RuntimeError("timeout")
            return original(variant_id, values)

        monkeypatch.setattr(backend, "bulk_upsert_attribute_values", flaky)

        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        with pytest.raises(CollaboratorError):
            wizard.save()
        variant = wizard.save()

        assert wizard.state == WizardState.COMMITTED
        assert [v.id for v in backend.list_variants("shampoo")] == [variant.id]


# ═══════════════════════════════════════════════════════════════════
# Edit mode
# ═══════════════════════════════════════════════════════════════════


class TestEdit:
    def test_round_trip(self, backend):
        variant = add_variant(backend, {"color": "Golden", "size": "500ml"}, name="Golden 500")

        wizard = open_edit(backend, variant.id)

        assert wizard.mode == WizardMode.EDIT
        assert wizard.draft.selected_attribute_ids == {"color", "size"}
        assert wizard.draft.attribute_values == {"color": "Golden", "size": "500ml"}
        assert wizard.draft.name == "Golden 500"
        assert wizard.draft.code == "PREM-GOLD-500ML"
        assert wizard.draft.is_default
        assert wizard.draft.is_active

    def test_active_flag_round_trips(self, backend):
        variant = add_variant(backend, {"color": "Golden"}, is_active=False)
        assert not variant.is_active

        wizard = open_edit(backend, variant.id)
        assert not wizard.draft.is_active
        assert wizard.snapshot()["is_active"] is False

        wizard.set_active(True)
        wizard.next()

        assert wizard.save().is_active
        assert backend.get_variant(variant.id).is_active

    def test_persisted_code_is_kept_until_regenerated(self, backend):
        variant = add_variant(backend, {"color": "Golden"})

        wizard = open_edit(backend, variant.id)
        wizard.set_value("color", "Silver")
        assert wizard.draft.code == "PREM-GOLD"

        assert wizard.regenerate_code() == "PREM-SILV"

    def test_deselected_attribute_is_dropped(self, backend):
        variant = add_variant(backend, {"color": "Golden", "size": "500ml"})

        wizard = open_edit(backend, variant.id)
        wizard.deselect_attribute("size")
        wizard.next()
        wizard.save()

        reopened = open_edit(backend, variant.id)
        assert reopened.draft.selected_attribute_ids == {"color"}
        flags = {d.id: d.is_variant_defining for d in backend.fetch_attribute_definitions("shampoo")}
        assert flags["size"] is False

    def test_only_variant_stays_default(self, backend):
        variant = add_variant(backend, {"color": "Golden"})

        wizard = open_edit(backend, variant.id)
        wizard.set_default(False)
        wizard.next()

        assert wizard.save().is_default

    def test_default_kept_until_another_takes_it(self, backend):
        first = add_variant(backend, {"color": "Golden"})
        add_variant(backend, {"color": "Silver"})

        wizard = open_edit(backend, first.id)
        wizard.set_default(False)
        wizard.next()
        wizard.save()

        assert defaults(backend) == [first.id]

    def test_edit_can_take_default(self, backend):
        add_variant(backend, {"color": "Golden"})
        second = add_variant(backend, {"color": "Silver"})

        wizard = open_edit(backend, second.id)
        wizard.set_default(True)
        wizard.next()
        wizard.save()

        assert defaults(backend) == [second.id]

    def test_edit_does_not_touch_verification(self, backend):
        variant = add_variant(backend, {"color": "Golden"})
        backend.set_variant_verified(variant.id, True, verified_by="user:ana")

        wizard = open_edit(backend, variant.id)
        wizard.next()
        wizard.set_name("Renamed")

        assert wizard.save().is_verified

    def test_variant_deleted_meanwhile(self, backend):
        variant = add_variant(backend, {"color": "Golden"})
        wizard = open_edit(backend, variant.id)
        wizard.next()
        backend.delete_variant(variant.id)

        with pytest.raises(VariantError) as exc:
            wizard.save()

        assert exc.value.code == "VARIANT_NOT_FOUND"


# ═══════════════════════════════════════════════════════════════════
# Illegal events, cancel, re-entrancy
# ═══════════════════════════════════════════════════════════════════


class TestStateGuards:
    def test_save_in_step_one(self, backend):
        wizard = open_add(backend)

        with pytest.raises(VariantError) as exc:
            wizard.save()

        assert exc.value.code == "INVALID_STATE"
        assert exc.value.details == {"current": "select_attributes", "event": "save"}

    def test_previous_in_step_one(self, backend):
        with pytest.raises(VariantError):
            open_add(backend).previous()

    def test_attribute_events_only_in_step_one(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        for event in (
            lambda: wizard.select_attribute("size"),
            lambda: wizard.deselect_attribute("color"),
            lambda: wizard.set_value("color", "Silver"),
            wizard.next,
        ):
            with pytest.raises(VariantError) as exc:
                event()
            assert exc.value.code == "INVALID_STATE"

    def test_nothing_after_commit(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        wizard.save()

        for event in (wizard.save, wizard.cancel, lambda: wizard.set_name("x")):
            with pytest.raises(VariantError):
                event()


class TestCancel:
    def test_cancel_discards_draft(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()

        wizard.cancel()

        assert wizard.state == WizardState.CANCELLED
        assert wizard.draft is None
        assert backend.list_variants("shampoo") == []
        assert wizard.snapshot()["state"] == "cancelled"

    def test_cancel_twice_is_harmless(self, backend):
        wizard = open_add(backend)
        wizard.cancel()
        wizard.cancel()

        with pytest.raises(VariantError):
            wizard.next()

    def test_cancel_during_commit(self, backend, monkeypatch):
        wizard = open_add(backend)
        original = backend.create_variant

        def create_then_cancel(*args, **kwargs):
            variant = original(*args, **kwargs)
            wizard.cancel()
            return variant

        monkeypatch.setattr(backend, "create_variant", create_then_cancel)

        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        variant = wizard.save()

        assert wizard.state == WizardState.CANCELLED
        assert wizard.draft is None
        assert backend.get_variant(variant.id) is not None


class TestReentrantSave:
    def test_second_save_is_ignored(self, backend, monkeypatch):
        wizard = open_add(backend)
        original = backend.create_variant
        nested = []

        def create_and_save_again(*args, **kwargs):
            nested.append(wizard.save())
            return original(*args, **kwargs)

        monkeypatch.setattr(backend, "create_variant", create_and_save_again)

        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")
        wizard.next()
        variant = wizard.save()

        assert nested == [None]
        assert variant is not None
        assert len(backend.list_variants("shampoo")) == 1


class TestSnapshot:
    def test_snapshot_in_step_one(self, backend):
        wizard = open_add(backend)
        wizard.select_attribute("color")
        wizard.set_value("color", "Golden")

        data = wizard.snapshot()

        assert data["state"] == "select_attributes"
        assert data["mode"] == "add"
        assert data["code"] == "PREM-GOLD"
        assert data["can_advance"] is True
        assert data["attributes"][0] == {"id": "color", "name": "Color", "selected": True, "value": "Golden"}
        assert [a["id"] for a in data["attributes"]] == ["color", "size", "scent"]
