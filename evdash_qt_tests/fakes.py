"""Collaborators that let the tests decide when asynchronous work ends."""

from typing import Any, List

from attrs import define, field

from evdash.constants import FILTER_TYPE_DROPDOWN, TableMode
from evdash.descriptors import ColumnDef, RowSelectionDef, TableDef
from evdash.filters import FilterDef
from evdash_qt.actions import (
    CreateAction,
    EditAction,
    ExportAction,
    RefreshAction,
    RemoveAction,
    ResetFiltersAction,
)
from evdash_qt.data_source import TableDataSource
from evdash_qt.worker import Work


@define
class ProviderCall:
    """A call made to the fake provider, completed by the test."""

    name: str
    args: tuple
    callback: Any = field(repr=False)
    completed: bool = False

    def resolve(self, result: Any) -> None:
        assert not self.completed, f"{self.name} completed twice"
        self.completed = True
        Work(fn=None, callback=self.callback, req_id=None).complete(
            result=result
        )

    def fail(self, error: BaseException) -> None:
        assert not self.completed, f"{self.name} completed twice"
        self.completed = True
        Work(fn=None, callback=self.callback, req_id=None).complete(
            error=error
        )


class FakeProvider:
    """Records the calls; the tests decide when and how they complete."""

    calls: List[ProviderCall]

    def __init__(self) -> None:
        self.calls = []

    def _record(self, name: str, callback: Any, *args: Any) -> None:
        self.calls.append(
            ProviderCall(name=name, args=args, callback=callback)
        )

    def named(self, name: str) -> List[ProviderCall]:
        return [c for c in self.calls if c.name == name]

    def last(self, name: str) -> ProviderCall:
        return self.named(name)[-1]

    def list(self, query, callback):
        self._record("list", callback, query)

    def create(self, entity, callback):
        self._record("create", callback, entity)

    def update(self, entity, callback):
        self._record("update", callback, entity)

    def remove(self, ids, callback):
        self._record("remove", callback, list(ids))

    def assign(self, parent_id, ids, callback):
        self._record("assign", callback, parent_id, list(ids))

    def unassign(self, parent_id, ids, callback):
        self._record("unassign", callback, parent_id, list(ids))


@define
class OpenedDialog:
    component: Any
    params: Any
    size: Any
    callback: Any = field(repr=False)


@define
class Question:
    title: str
    message: str
    callback: Any = field(repr=False)


class FakeDialogs:
    """Dialog mediator that keeps the callbacks for the tests."""

    def __init__(self) -> None:
        self.opened: List[OpenedDialog] = []
        self.questions: List[Question] = []

    def open(self, component, params, size, callback):
        self.opened.append(OpenedDialog(component, params, size, callback))

    def ask_yes_no(self, title, message, callback):
        self.questions.append(Question(title, message, callback))


class PeopleSource(TableDataSource[dict]):
    """A small table used to exercise the engine."""

    table_id = "people"

    def build_table_def(self) -> TableDef:
        return TableDef(
            id=self.table_id,
            row_selection=RowSelectionDef(
                enabled=self.mode == TableMode.READ_WRITE, multiple=True
            ),
            search_enabled=True,
        )

    def build_column_defs(self):
        return [
            ColumnDef(id="name", sortable=True, sorted=True),
            ColumnDef(id="email", sortable=True),
            ColumnDef(id="phone"),
        ]

    def build_filter_defs(self):
        return [
            FilterDef(
                id="status",
                http_id="Status",
                type=FILTER_TYPE_DROPDOWN,
                multiple=True,
            ),
            FilterDef(id="city", http_id="City"),
        ]

    def build_actions(self):
        return [
            CreateAction(component="PersonForm"),
            EditAction(component="PersonForm"),
            RemoveAction(),
            ExportAction(),
            RefreshAction(),
            ResetFiltersAction(),
        ]


def person(person_id: str, **kwargs: Any) -> dict:
    result = {"id": person_id, "name": person_id.upper()}
    result.update(kwargs)
    return result
