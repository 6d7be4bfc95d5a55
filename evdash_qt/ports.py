"""Boundaries between the engine and its collaborators.

The engine never talks to the backend directly. It goes through a
`DataProvider`, whose methods return immediately and report the outcome
later by calling the callback with a `Work` object: `result` holds a `Page`
(for `list`) or a `MutationResult` (for writes), `error` holds the failure.

`RelayDataProvider` adapts a blocking `RemoteClient` (an HTTP client, for
example) to that contract by running each call in the provider thread of the
context.
"""

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    List,
    Optional,
    Protocol,
    Sequence,
)

from attrs import field, frozen
from pyrsistent.typing import PMap

from evdash.constants import RowIdType
from evdash.errors import as_failure
from evdash.page import MutationResult, Page
from evdash.query import Query
from evdash_qt.worker import Work

if TYPE_CHECKING:
    from evdash_qt.context import QtContext

logger = logging.getLogger(__name__)

WorkCallback = Callable[[Work], None]


class DataProvider(Protocol):
    """Supplies pages of rows and performs mutations, asynchronously."""

    def list(self, query: Query, callback: WorkCallback) -> None: ...

    def create(self, entity: Any, callback: WorkCallback) -> None: ...

    def update(self, entity: Any, callback: WorkCallback) -> None: ...

    def remove(
        self, ids: Sequence[RowIdType], callback: WorkCallback
    ) -> None: ...

    def assign(
        self,
        parent_id: RowIdType,
        ids: Sequence[RowIdType],
        callback: WorkCallback,
    ) -> None: ...

    def unassign(
        self,
        parent_id: RowIdType,
        ids: Sequence[RowIdType],
        callback: WorkCallback,
    ) -> None: ...


class RemoteClient(Protocol):
    """Blocking counterpart of `DataProvider`.

    Methods return their result or raise; they are called from the worker
    thread.
    """

    def list(self, query: Query) -> Page: ...

    def create(self, entity: Any) -> MutationResult: ...

    def update(self, entity: Any) -> MutationResult: ...

    def remove(self, ids: Sequence[RowIdType]) -> MutationResult: ...

    def assign(
        self, parent_id: RowIdType, ids: Sequence[RowIdType]
    ) -> MutationResult: ...

    def unassign(
        self, parent_id: RowIdType, ids: Sequence[RowIdType]
    ) -> MutationResult: ...


@frozen
class ExportRequest:
    """What an export action hands to the exporter.

    Attributes:
        table_id: The table the export was started from.
        query: The query of the current page; exporters usually drop the
            paging part.
        filters: The values of the filters, by filter id.
    """

    table_id: str
    query: Query
    filters: PMap[str, Any] = field(repr=False)


class Exporter(Protocol):
    """Receives export requests (downloads a file, for example)."""

    def export(self, request: ExportRequest) -> None: ...


class RelayDataProvider:
    """Runs a blocking `RemoteClient` in the provider thread of a context.

    Exceptions raised by the client are converted to failures of the
    engine before the callback is called, so consumers only ever see
    `TableError` instances in `work.error`.

    Attributes:
        ctx: The context that owns the provider thread.
        client: The blocking client.
    """

    ctx: "QtContext"
    client: RemoteClient

    def __init__(self, ctx: "QtContext", client: RemoteClient) -> None:
        self.ctx = ctx
        self.client = client

    def _push(
        self,
        name: str,
        fn: Callable[[], Any],
        callback: WorkCallback,
        expected: type,
    ) -> Work:
        def on_done(work: Work) -> None:
            if work.error is None and not isinstance(work.result, expected):
                work.error = TypeError(
                    f"{name} returned {work.result.__class__.__name__}, "
                    f"expected {expected.__name__}"
                )
            if work.error is not None:
                work.error = as_failure(work.error)
                work.result = None
            callback(work)

        return self.ctx.push_work(fn=fn, callback=on_done, name=name)

    def list(self, query: Query, callback: WorkCallback) -> None:
        self._push("list", lambda: self.client.list(query), callback, Page)

    def create(self, entity: Any, callback: WorkCallback) -> None:
        self._push(
            "create",
            lambda: self.client.create(entity),
            callback,
            MutationResult,
        )

    def update(self, entity: Any, callback: WorkCallback) -> None:
        self._push(
            "update",
            lambda: self.client.update(entity),
            callback,
            MutationResult,
        )

    def remove(
        self, ids: Sequence[RowIdType], callback: WorkCallback
    ) -> None:
        id_list: List[RowIdType] = list(ids)
        self._push(
            "remove",
            lambda: self.client.remove(id_list),
            callback,
            MutationResult,
        )

    def assign(
        self,
        parent_id: RowIdType,
        ids: Sequence[RowIdType],
        callback: WorkCallback,
    ) -> None:
        id_list: List[RowIdType] = list(ids)
        self._push(
            "assign",
            lambda: self.client.assign(parent_id, id_list),
            callback,
            MutationResult,
        )

    def unassign(
        self,
        parent_id: RowIdType,
        ids: Sequence[RowIdType],
        callback: WorkCallback,
    ) -> None:
        id_list: List[RowIdType] = list(ids)
        self._push(
            "unassign",
            lambda: self.client.unassign(parent_id, id_list),
            callback,
            MutationResult,
        )


def call_sync(
    fn: Callable[[], Any], callback: WorkCallback, req_id: Optional[Any] = None
) -> Work:
    """Run `fn` on the current thread and report through `callback`.

    Useful for providers whose backend is already in memory.
    """
    work = Work(fn=fn, callback=callback, req_id=req_id, name="sync")
    try:
        work.perform()
    except Exception as e:
        work.error = as_failure(e)
    callback(work)
    return work
