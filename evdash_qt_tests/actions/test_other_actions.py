from unittest.mock import MagicMock

import pytest

from evdash.constants import ButtonType
from evdash.descriptors import ActionContext, ActionKind
from evdash.page import Page
from evdash_qt.actions import (
    CustomAction,
    ExportAction,
    RefreshAction,
    ResetFiltersAction,
    TableAction,
)

from evdash_qt_tests.fakes import PeopleSource, person


def test_table_action_needs_id():
    with pytest.raises(ValueError):
        TableAction()


def test_table_action_trigger_is_abstract():
    action = TableAction(id="x")
    with pytest.raises(NotImplementedError):
        action.trigger(ActionContext(source=None))


def test_predicates_are_evaluated_each_time():
    flags = {"can_do": False}
    action = CustomAction(
        handler=MagicMock(),
        id="do",
        visible_if=lambda actx: actx.auth["can_do"],
    )
    descriptor = action.get_descriptor()
    actx = ActionContext(source=None, auth=flags)

    assert not descriptor.is_visible(actx)
    flags["can_do"] = True
    assert descriptor.is_visible(actx)
    assert descriptor.is_enabled(actx)


def test_custom_action(source):
    handler = MagicMock()
    action = CustomAction(handler=handler, id="ping")
    assert action.get_descriptor().kind == ActionKind.CUSTOM

    actx = source.action_context()
    action.trigger(actx)
    handler.assert_called_once_with(actx)


def test_custom_action_without_handler(source):
    with pytest.raises(NotImplementedError):
        CustomAction(id="x").trigger(source.action_context())


def test_refresh_action(source, provider):
    source.trigger_action("refresh")
    assert len(provider.named("list")) == 1


def test_reset_filters_action(source, provider):
    source.set_search("abc")
    source.set_filter("status", ["on", "off"])
    source.set_page(2)

    source.trigger_action("reset_filters")

    query = provider.last("list").args[0]
    assert dict(query.filters) == {}
    assert query.page == 0


class TestExportAction:
    def test_export_without_confirmation(self, source, provider, context):
        source.set_filter("city", "Paris")
        source.trigger_action("export")

        context.exporter.export.assert_called_once()
        request = context.exporter.export.call_args[0][0]
        assert request.table_id == "people"
        assert dict(request.filters) == {"city": "Paris"}
        assert request.query.filters["City"] == "Paris"

    def test_export_does_not_touch_the_source(self, source, provider):
        source.refresh()
        provider.last("list").resolve(Page([person("a")], 1))
        source.select({"a"})

        source.trigger_action("export")

        assert source.rows == (person("a"),)
        assert source.selected_ids == frozenset({"a"})
        assert len(provider.named("list")) == 1

    def test_export_with_confirmation(self, context, provider, dialogs):
        class Exported(PeopleSource):
            def build_actions(self):
                return [ExportAction(confirm_title=("t", "Export"))]

        source = Exported(context, provider)
        source.trigger_action("export")
        context.exporter.export.assert_not_called()

        dialogs.questions[0].callback(ButtonType.NO)
        context.exporter.export.assert_not_called()

        source.trigger_action("export")
        dialogs.questions[1].callback(ButtonType.YES)
        context.exporter.export.assert_called_once()
        source.close()

    def test_export_without_exporter(self, source, context):
        context.exporter = None
        with pytest.raises(RuntimeError):
            source.trigger_action("export")


def test_builtin_custom_actions_ids():
    assert RefreshAction().get_descriptor().id == "refresh"
    assert ResetFiltersAction().get_descriptor().id == "reset_filters"
