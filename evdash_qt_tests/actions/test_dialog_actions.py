from unittest.mock import MagicMock

import pytest

from evdash.constants import ButtonType, DialogMode, ScreenSize
from evdash.descriptors import ActionKind
from evdash.page import MutationResult, Page
from evdash_qt.actions import (
    AssignAction,
    CreateAction,
    DialogAction,
    EditAction,
    is_cancelled,
)
from evdash_qt.dialogs import DialogParams, SizeProfile

from evdash_qt_tests.fakes import PeopleSource, person


def loaded(source, provider, rows):
    source.refresh()
    provider.last("list").resolve(Page(rows, len(rows)))


class TestIsCancelled:
    def test_cancel_values(self):
        assert is_cancelled(None)
        assert is_cancelled(False)
        assert is_cancelled(ButtonType.CANCEL)

    def test_payloads(self):
        assert not is_cancelled({})
        assert not is_cancelled([])
        assert not is_cancelled(ButtonType.OK)


def test_dialog_action_requires_apply_result(source, dialogs):
    action = DialogAction(component="Form", id="custom-dialog")
    action.trigger(source.action_context())
    with pytest.raises(NotImplementedError):
        dialogs.opened[0].callback({"x": 1})


def test_create_opens_dialog(source, dialogs, provider, shown_messages):
    assert source.trigger_action("create") is True

    opened = dialogs.opened[0]
    assert opened.component == "PersonForm"
    assert opened.params == DialogParams(
        dialog_data=None, dialog_mode=DialogMode.CREATE
    )

    opened.callback({"name": "new"})
    assert provider.last("create").args == ({"name": "new"},)

    provider.last("create").resolve(MutationResult())
    assert len(provider.named("list")) == 1


def test_dialog_component_override(source, dialogs):
    source.ctx.set_ovr("dialog.people.create", "CustomPersonForm")
    source.trigger_action("create")
    assert dialogs.opened[0].component == "CustomPersonForm"


def test_create_cancelled(source, dialogs, provider):
    source.trigger_action("create")
    dialogs.opened[0].callback(None)
    assert provider.named("create") == []
    assert not source.is_busy


def test_create_accepted_without_value(source, dialogs, provider, caplog):
    source.trigger_action("create")
    dialogs.opened[0].callback(True)
    assert provider.named("create") == []
    assert "accepted without a value" in caplog.text


def test_edit_accepted_without_value(source, dialogs, provider):
    row = person("a", can_update=True)
    loaded(source, provider, [row])

    source.trigger_action("edit", row=row)
    dialogs.opened[0].callback(True)
    assert provider.named("update") == []


def test_dialog_never_closed(source, dialogs, provider):
    """Test that a dialog that never closes leaves nothing pending."""
    source.trigger_action("create")
    assert not source.is_busy
    assert not source.has_pending

    # The table keeps working.
    loaded(source, provider, [person("a")])
    assert source.rows == (person("a"),)


def test_edit_row_in_edit_mode(source, dialogs, provider, shown_messages):
    row = person("a", can_update=True)
    loaded(source, provider, [row])

    assert source.trigger_action("edit", row=row)
    opened = dialogs.opened[0]
    assert opened.params.dialog_mode == DialogMode.EDIT
    assert opened.params.dialog_data == row

    opened.callback({"id": "a", "name": "Changed"})
    assert provider.last("update").args == ({"id": "a", "name": "Changed"},)


def test_edit_view_mode_ignores_result(source, dialogs, provider):
    row = person("a")
    loaded(source, provider, [row])

    source.trigger_action("edit", row=row)
    opened = dialogs.opened[0]
    assert opened.params.dialog_mode == DialogMode.VIEW

    opened.callback({"id": "a", "name": "Changed"})
    assert provider.named("update") == []


def test_edit_uses_single_selection(source, dialogs, provider):
    row = person("b", can_update=True)
    loaded(source, provider, [person("a"), row])
    source.select({"b"})

    source.trigger_action("edit")
    assert dialogs.opened[0].params.dialog_data == row


def test_edit_without_target(source, dialogs, provider, shown_errors):
    loaded(source, provider, [person("a"), person("b")])
    source.select({"a", "b"})

    source.trigger_action("edit")
    assert dialogs.opened == []
    shown_errors.assert_called_once()


class TestAssignAction:
    @pytest.fixture
    def assign_source(self, context, provider, shown_errors, shown_messages):
        chooser = MagicMock(name="chooser")

        class Members(PeopleSource):
            def build_actions(self):
                return [
                    AssignAction(
                        chooser,
                        id_field="key",
                        size=SizeProfile.uniform(ScreenSize.L),
                        static_filter=lambda actx: {
                            "ExcludeGroupID": actx.auth["id"]
                        },
                    )
                ]

        result = Members(context, provider, parent_entity={"id": "g1"})
        yield result
        result.close()

    def test_descriptor(self, assign_source):
        action = assign_source.get_descriptor().get_action("add")
        assert action.kind == ActionKind.ASSIGN

    def test_opens_chooser_with_static_filter(self, assign_source, dialogs):
        assign_source.trigger_action("add")
        opened = dialogs.opened[0]
        assert dict(opened.params.static_filter) == {"ExcludeGroupID": "g1"}
        assert opened.size.width == ScreenSize.L

    def test_assigns_chosen_rows(self, assign_source, dialogs, provider):
        assign_source.trigger_action("add")
        dialogs.opened[0].callback([{"key": "u1"}, {"key": "u2"}])

        assert provider.last("assign").args == ("g1", ["u1", "u2"])

    def test_accepts_plain_ids(self, assign_source, dialogs, provider):
        assign_source.trigger_action("add")
        dialogs.opened[0].callback(["u3"])
        assert provider.last("assign").args == ("g1", ["u3"])

    def test_empty_choice_is_a_no_op(self, assign_source, dialogs, provider):
        assign_source.trigger_action("add")
        dialogs.opened[0].callback([])
        assert provider.named("assign") == []

    def test_boolean_result_is_not_an_id(
        self, assign_source, dialogs, provider
    ):
        assign_source.trigger_action("add")
        dialogs.opened[0].callback([True, "u4"])
        assert provider.last("assign").args == ("g1", ["u4"])

    def test_accepted_without_value(self, assign_source, dialogs, provider):
        assign_source.trigger_action("add")
        dialogs.opened[0].callback(True)
        assert provider.named("assign") == []


def test_create_action_defaults():
    action = CreateAction(component="Form")
    descriptor = action.get_descriptor()
    assert descriptor.id == "create"
    assert descriptor.kind == ActionKind.CREATE
    assert descriptor.tooltip == "general.create"


def test_edit_action_custom_id():
    action = EditAction(component="Form", id="view", name="general.view")
    assert action.get_descriptor().id == "view"
    assert action.get_descriptor().name == "general.view"
