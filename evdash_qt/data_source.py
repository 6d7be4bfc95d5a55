import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    FrozenSet,
    Generic,
    Iterable,
    List,
    Optional,
    Set,
    Tuple,
    TypeVar,
)

from PyQt5.QtCore import QObject, pyqtSignal

from evdash.constants import (
    SEARCH_FILTER_ID,
    SORT_DIRECTIONS,
    RowIdType,
    SortDirection,
    TableMode,
)
from evdash.descriptors import (
    ActionContext,
    ColumnDef,
    TableDef,
    TableDescriptor,
)
from evdash.errors import (
    FailureStatus,
    TransportFailure,
    ValidationFailure,
    as_failure,
)
from evdash.filters import (
    FilterDef,
    FilterState,
    PagingState,
    SortState,
    search_filter_def,
)
from evdash.page import MutationResult, Page
from evdash.query import Query, build_query
from evdash.requests import PageRequest, PageRequestManager, describe
from evdash.utils import get_row_id, is_selectable
from evdash_qt.context_use import QtUseContext, TextPair
from evdash_qt.plugins import evdash_qt_pm
from evdash_qt.ports import ExportRequest
from evdash_qt.utils.plugins import safe_hook_call
from evdash_qt.worker import Work

if TYPE_CHECKING:
    from evdash_qt.actions.base import TableAction  # noqa: F401
    from evdash_qt.context import QtContext  # noqa: F401
    from evdash_qt.dialogs import DialogMediator  # noqa: F401
    from evdash_qt.ports import DataProvider  # noqa: F401

T = TypeVar("T")

logger = logging.getLogger(__name__)

# Translation key and default text of the messages shown after mutations.
DEFAULT_MESSAGES: Dict[str, TextPair] = {
    "create.success": ("general.create_success", "The record was created"),
    "create.error": ("general.create_error", "The record could not be created"),
    "update.success": ("general.update_success", "The record was updated"),
    "update.error": ("general.update_error", "The record could not be updated"),
    "remove.success": ("general.delete_success", "The records were deleted"),
    "remove.error": ("general.delete_error", "The records could not be deleted"),
    "assign.success": ("general.assign_success", "The records were assigned"),
    "assign.error": ("general.assign_error", "The records could not be assigned"),
    "unassign.success": (
        "general.unassign_success",
        "The records were unassigned",
    ),
    "unassign.error": (
        "general.unassign_error",
        "The records could not be unassigned",
    ),
}


class TableDataSource(
    QtUseContext,
    PageRequestManager,
    Generic[T],
    QObject,
):
    """A remote, paginated collection presented as a table.

    The data source owns the state of one table: the filters, the page, the
    sort column, the rows of the current page and the selection. The view
    changes that state through the methods of this class and asks for a new
    page with `reload()`; nothing else may change it.

    Subclasses describe the table by overriding the `build_*` methods and,
    when the rows belong to another entity (the users of a site, for
    example), by setting `requires_parent` and overriding `static_filters`.

    Loading is asynchronous. `reload()` returns a request that does nothing
    until it is subscribed to; when it is issued the query is built from
    the state at that time. Only the most recent request is applied, so
    results that arrive for older requests are dropped.

    Attributes:
        ctx: The top level context.
        provider: The data provider that loads pages and performs the
            mutations.
        table_id: Identifier of the table, used for settings.
        mode: Read-write or read-only.
        parent_entity: The entity the rows belong to, if any.
        requires_parent: If True the data source shows nothing (and does not
            call the provider) until a parent entity is set.
        parent_id_field: The path of the identity of the parent entity.
        keep_selection: Default for `reload()`; if True the selection is
            pruned to the rows of the new page, otherwise it is cleared.
        messages: The translation key and default text of the messages
            shown after mutations, by `<operation>.<success|error>`.
        filter_state: The values of the filters.
        paging: The page that is requested.
        sort_state: The sort column.

    Signals:
        busyChanged: Emitted with the new state when the data source starts
            or stops waiting for the provider.
        pageLoaded: Emitted with the total count after a page has been
            applied.
        selectionChanged: Emitted when the set of selected rows changes.
        requestIssued: Emitted with the token of a request when the provider
            is called.
        requestCompleted: Emitted with the token of a request whose page
            has been applied.
        requestError: Emitted with the token of a request and the message
            when the request fails.
        modeChanged: Emitted with the new mode.
    """

    provider: "DataProvider"
    table_id: str = ""
    mode: TableMode
    parent_entity: Any
    requires_parent: bool = False
    parent_id_field: str = "id"
    keep_selection: bool
    messages: Dict[str, TextPair] = DEFAULT_MESSAGES
    filter_state: FilterState
    paging: PagingState
    sort_state: SortState
    _rows: Tuple[T, ...]
    _total_count: int
    _selected: Set[RowIdType]
    _busy: bool
    _pending_mutations: int
    _closed: bool
    _descriptors: Dict[TableMode, TableDescriptor]

    busyChanged = pyqtSignal(bool)
    pageLoaded = pyqtSignal(int)
    selectionChanged = pyqtSignal()
    requestIssued = pyqtSignal(int)
    requestCompleted = pyqtSignal(int)
    requestError = pyqtSignal(int, str)
    modeChanged = pyqtSignal(str)

    def __init__(
        self,
        ctx: "QtContext",
        provider: "DataProvider",
        mode: TableMode = TableMode.READ_WRITE,
        parent_entity: Any = None,
        page_size: Optional[int] = None,
        keep_selection: bool = True,
        parent: Optional[QObject] = None,
    ):
        """Initialize the data source.

        Args:
            ctx: The top level context.
            provider: The data provider.
            mode: The initial mode.
            parent_entity: The entity the rows belong to, if known.
            page_size: The number of rows in a page; defaults to the
                configured page size of the table.
            keep_selection: Default selection policy of `reload()`.
            parent: The parent QObject.
        """
        QObject.__init__(self, parent=parent)
        PageRequestManager.__init__(self)
        QtUseContext.__init__(self)

        self.ctx = ctx
        self.provider = provider
        self.mode = TableMode(mode)
        self.parent_entity = parent_entity
        self.keep_selection = keep_selection
        self._rows = ()
        self._total_count = 0
        self._selected = set()
        self._busy = False
        self._pending_mutations = 0
        self._closed = False
        self._descriptors = {}

        self.paging = PagingState(
            page_size=page_size or ctx.default_page_size(self.table_id)
        )
        self.filter_state = FilterState(self.build_filter_defs())
        if (
            self.build_table_def().search_enabled
            and SEARCH_FILTER_ID not in self.filter_state.defs
        ):
            self.filter_state.add_def(search_filter_def())

        self.sort_state = SortState()
        default_sort = self.get_descriptor().default_sort()
        if default_sort is not None:
            self.sort_state = SortState(
                column_id=default_sort.id,
                direction=default_sort.direction,
            )

        # Inform plugins that a data source has been created.
        safe_hook_call(evdash_qt_pm.hook.data_source_created, data_source=self)

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.table_id!r})"

    # ------------------------------------------------------------------
    # Table description.
    # ------------------------------------------------------------------

    def build_table_def(self) -> TableDef:
        """Table-level capabilities in the current mode."""
        return TableDef(id=self.table_id)

    def build_column_defs(self) -> List[ColumnDef]:
        """The columns in the current mode."""
        return []

    def build_actions(self) -> List["TableAction"]:
        """The action catalogue in the current mode."""
        return []

    def build_filter_defs(self) -> List[FilterDef]:
        """The filters of the table; built once."""
        return []

    def get_descriptor(self) -> TableDescriptor:
        """Describe the table for the view.

        The descriptor is cached per mode; setting a new parent entity
        clears the cache. Action predicates are not part of the cache, they
        are evaluated each time they are asked for.
        """
        result = self._descriptors.get(self.mode)
        if result is None:
            result = TableDescriptor(
                mode=self.mode,
                table=self.build_table_def(),
                columns=self.build_column_defs(),
                actions=[a.get_descriptor() for a in self.build_actions()],
                filters=self.filter_state.defs.values(),
            )
            self._descriptors[self.mode] = result
        return result

    def set_mode(self, mode: TableMode) -> bool:
        """Switch between read-write and read-only mode."""
        mode = TableMode(mode)
        if mode == self.mode:
            return False
        logger.debug("%s: mode changed from %s to %s", self, self.mode, mode)
        self.mode = mode
        if not self.get_descriptor().table.row_selection.enabled:
            self.clear_selection()
        self.modeChanged.emit(str(mode))
        return True

    def set_parent(self, entity: Any) -> None:
        """Bind the data source to a new parent entity.

        The rows of the previous parent are still shown until the next
        reload, but the selection is cleared, requests in flight are
        discarded and the first page will be requested.
        """
        self.parent_entity = entity
        self._descriptors.clear()
        self.paging.page_index = 0
        self.clear_selection()
        self.discard_all()
        self._update_busy()

    def parent_id(self) -> Optional[RowIdType]:
        """The identity of the parent entity, if there is one."""
        if self.parent_entity is None:
            return None
        return get_row_id(self.parent_entity, self.parent_id_field)

    def auth_entity(self) -> Any:
        """The entity whose flags decide which actions are available."""
        return self.parent_entity

    # ------------------------------------------------------------------
    # Actions.
    # ------------------------------------------------------------------

    def action_context(self, row: Any = None) -> ActionContext:
        return ActionContext(
            source=self,
            auth=self.auth_entity(),
            selection=self.selected_ids,
            row=row,
        )

    def trigger_action(self, action_id: str, row: Any = None) -> bool:
        """Run an action of the catalogue.

        Returns:
            False if there is no such action or if it is hidden or
            disabled right now.
        """
        action = self.get_descriptor().get_action(action_id)
        if action is None:
            logger.warning("%s: unknown action %s", self, action_id)
            return False

        actx = self.action_context(row)
        if not action.is_enabled(actx):
            logger.warning(
                "%s: action %s is not available right now", self, action_id
            )
            return False
        if action.handler is None:
            logger.warning("%s: action %s has no handler", self, action_id)
            return False

        logger.debug("%s: triggering action %s", self, action_id)
        action.handler(actx)
        return True

    def dialogs(self) -> "DialogMediator":
        mediator = self.ctx.dialogs
        if mediator is None:
            raise RuntimeError("The context has no dialog mediator")
        return mediator

    # ------------------------------------------------------------------
    # Query state.
    # ------------------------------------------------------------------

    def static_filters(self) -> Dict[str, Any]:
        """Restrictions that do not come from the user."""
        return {}

    def current_query(self) -> Query:
        """The query for the current state."""
        return build_query(
            self.filter_state,
            self.paging,
            self.sort_state,
            self.static_filters(),
        )

    def _invalidate_page(self) -> None:
        if self.paging.page_index != 0:
            logger.debug("%s: back to the first page", self)
        self.paging.page_index = 0

    def set_filter(self, filter_id: str, value: Any) -> bool:
        """Change the value of a filter.

        Returns:
            True if the query changed; the first page will be requested by
            the next reload.

        Raises:
            KeyError: no such filter.
            ValueError: the value has the wrong shape.
        """
        changed = self.filter_state.set(filter_id, value)
        if changed:
            self._invalidate_page()
        return changed

    def set_search(self, text: str) -> bool:
        if SEARCH_FILTER_ID not in self.filter_state.defs:
            logger.warning("%s: search is not enabled", self)
            return False
        return self.set_filter(SEARCH_FILTER_ID, text)

    def reset_filters(self) -> bool:
        """Restore the default value of every filter, search included."""
        changed = self.filter_state.reset()
        if changed:
            self._invalidate_page()
        return changed

    def set_sort(
        self,
        column_id: Optional[str],
        direction: SortDirection = "asc",
    ) -> bool:
        """Sort by a single column; None removes the sort.

        Columns that are unknown or not sortable are ignored.

        Raises:
            ValueError: the direction is neither `asc` nor `desc`.
        """
        if direction not in SORT_DIRECTIONS:
            raise ValueError(f"Invalid sort direction `{direction}`")

        if column_id is None:
            new_sort = SortState()
        else:
            column = self.get_descriptor().get_column(column_id)
            if column is None or not column.sortable:
                logger.warning(
                    "%s: cannot sort by column %s", self, column_id
                )
                return False
            new_sort = SortState(column_id=column_id, direction=direction)

        if new_sort == self.sort_state:
            return False
        self.sort_state = new_sort
        self._invalidate_page()
        return True

    def set_page(self, page_index: int) -> bool:
        """Move to another page; filters and sort are left alone.

        Raises:
            ValueError: the index is negative.
        """
        if page_index < 0:
            raise ValueError(f"Invalid page index {page_index}")
        if page_index == self.paging.page_index:
            return False
        self.paging.page_index = page_index
        return True

    def set_page_size(self, page_size: int, remember: bool = True) -> bool:
        """Change the number of rows in a page.

        Args:
            page_size: The new size.
            remember: Store the size in the local settings, so that the
                table starts with it next time.

        Raises:
            ValueError: the size is not positive.
        """
        if page_size <= 0:
            raise ValueError(f"Invalid page size {page_size}")
        if page_size == self.paging.page_size:
            return False
        self.paging.page_size = page_size
        if remember and self.table_id:
            self.ctx.stg.set_table_setting(
                self.table_id, "page_size", page_size
            )
        self._invalidate_page()
        return True

    def export_snapshot(self) -> ExportRequest:
        """What an exporter needs to reproduce the current result."""
        return ExportRequest(
            table_id=self.table_id,
            query=self.current_query(),
            filters=self.filter_state.snapshot(),
        )

    # ------------------------------------------------------------------
    # Loading.
    # ------------------------------------------------------------------

    @property
    def rows(self) -> Tuple[T, ...]:
        return self._rows

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def is_busy(self) -> bool:
        return self._busy

    def row_id(self, row: T) -> RowIdType:
        return get_row_id(row, self.get_descriptor().table.row_id_field)

    def row_by_id(self, row_id: RowIdType) -> Optional[T]:
        for row in self._rows:
            if self._safe_row_id(row) == row_id:
                return row
        return None

    def _safe_row_id(self, row: T) -> Optional[RowIdType]:
        try:
            return self.row_id(row)
        except ValueError:
            logger.warning("%s: row without identity: %r", self, row)
            return None

    def reload(self, keep_selection: Optional[bool] = None) -> PageRequest:
        """Create a request for the current page.

        Nothing is sent until the request is subscribed to.

        Args:
            keep_selection: If True the selection is pruned to the rows of
                the new page; if False it is cleared. Defaults to the
                `keep_selection` attribute.
        """
        if keep_selection is None:
            keep_selection = self.keep_selection
        keep = keep_selection
        return self.new_request(lambda req: self._issue(req, keep))

    def refresh(self) -> PageRequest:
        """Reload the current page right away."""
        return self.reload().subscribe()

    def _issue(self, req: PageRequest, keep_selection: bool) -> None:
        if self._closed:
            logger.warning("%s: reload after close is ignored", self)
            req.discard()
            return

        if self.requires_parent and self.parent_entity is None:
            # Supersede the requests in flight but do not track this one.
            self.add_request(req, track=False)
            logger.debug("%s: no parent, request %d is empty", self, req.uniq_id)
            page: Page = Page.empty()
            self._apply_page(page, keep_selection)
            self._update_busy()
            self.pageLoaded.emit(page.total_count)
            req.resolve(page)
            return

        self.add_request(req)
        req.query = self.current_query()
        uniq_id = req.uniq_id
        logger.debug("%s: issuing %s", self, describe(req))
        self._update_busy()
        self.requestIssued.emit(uniq_id)

        try:
            self.provider.list(
                req.query,
                lambda work: self._page_loaded(uniq_id, work, keep_selection),
            )
        except Exception as e:
            logger.error("%s: list failed to start", self, exc_info=True)
            failed = self.take_request(uniq_id)
            if failed is not None:
                self._page_failed(failed, e, keep_selection)

    def _page_loaded(
        self, uniq_id: int, work: "Work", keep_selection: bool
    ) -> None:
        """We are informed that a page has been loaded (or not)."""
        req = self.take_request(uniq_id)
        if req is None:
            logger.debug("%s: dropping the result of %d", self, uniq_id)
            return

        error = work.error
        page = work.result
        if error is None:
            assert req.query is not None
            if not isinstance(page, Page):
                error = TransportFailure(
                    f"The provider returned {page.__class__.__name__} "
                    "instead of a page"
                )
            elif not page.fits(req.query.page_size):
                error = TransportFailure(
                    f"The provider returned {len(page)} rows for a page of "
                    f"{req.query.page_size}"
                )

        if error is not None:
            self._page_failed(req, error, keep_selection)
            return

        self._apply_page(page, keep_selection)
        self._update_busy()
        logger.debug("%s: request %d loaded %d rows", self, uniq_id, len(page))
        self.pageLoaded.emit(page.total_count)
        self.requestCompleted.emit(uniq_id)
        req.resolve(page)

    def _page_failed(
        self, req: PageRequest, error: BaseException, keep_selection: bool
    ) -> None:
        failure = as_failure(error)
        if failure.status == FailureStatus.NOT_FOUND:
            # The parent is gone, so are its rows.
            page: Page = Page.empty()
            self._apply_page(page, keep_selection)
            self.pageLoaded.emit(page.total_count)
        self._update_busy()
        self.requestError.emit(req.uniq_id, failure.message)
        self.handle_failure(failure)
        req.fail(failure)

    def _apply_page(self, page: Page, keep_selection: bool) -> None:
        # Rows and total count change together, before any signal.
        self._rows = page.rows
        self._total_count = page.total_count

        if keep_selection:
            on_page = {self._safe_row_id(row) for row in page.rows}
            selected = self._selected & on_page
        else:
            selected = set()
        if selected != self._selected:
            self._selected = selected
            self.selectionChanged.emit()

    def _update_busy(self) -> None:
        busy = not self._closed and (
            self.has_pending or self._pending_mutations > 0
        )
        if busy == self._busy:
            return
        self._busy = busy
        if busy:
            self.ctx.busy.acquire(self)
        else:
            self.ctx.busy.release(self)
        self.busyChanged.emit(busy)

    def close(self) -> None:
        """Stop using the data source.

        Requests in flight are discarded and the shared busy indicator is
        released.
        """
        if self._closed:
            return
        self._closed = True
        self.discard_all()
        self._pending_mutations = 0
        self._update_busy()
        logger.debug("%s: closed", self)

    # ------------------------------------------------------------------
    # Selection.
    # ------------------------------------------------------------------

    @property
    def selected_ids(self) -> FrozenSet[RowIdType]:
        return frozenset(self._selected)

    def selected_rows(self) -> List[T]:
        return [
            row
            for row in self._rows
            if self._safe_row_id(row) in self._selected
        ]

    def order_ids(self, ids: Iterable[RowIdType]) -> List[RowIdType]:
        """The given identities in the order of the rows of the page.

        Identities that are not on the page come last.
        """
        wanted = set(ids)
        result = []
        for row in self._rows:
            row_id = self._safe_row_id(row)
            if row_id in wanted:
                result.append(row_id)
                wanted.discard(row_id)
        result.extend(wanted)
        return result

    def select(self, ids: Iterable[RowIdType]) -> FrozenSet[RowIdType]:
        """Replace the selection.

        Identities that are not on the current page, and rows that are not
        selectable, are ignored. In single-selection mode only the first
        row (in page order) is kept.

        Returns:
            The new selection.
        """
        selection_def = self.get_descriptor().table.row_selection
        if not selection_def.enabled:
            logger.warning("%s: row selection is disabled", self)
            return self.selected_ids

        wanted = set(ids)
        selected: Set[RowIdType] = set()
        for row in self._rows:
            row_id = self._safe_row_id(row)
            if row_id is None or row_id not in wanted:
                continue
            if not is_selectable(row):
                logger.debug("%s: row %r is not selectable", self, row_id)
                continue
            selected.add(row_id)
            if not selection_def.multiple:
                break

        ignored = wanted - selected
        if ignored:
            logger.debug("%s: ignored selection of %s", self, ignored)

        if selected != self._selected:
            self._selected = selected
            self.selectionChanged.emit()
        return self.selected_ids

    def clear_selection(self) -> None:
        if self._selected:
            self._selected = set()
            self.selectionChanged.emit()

    # ------------------------------------------------------------------
    # Mutations.
    # ------------------------------------------------------------------

    def message(self, name: str) -> TextPair:
        """The translation key and default text of a message."""
        return self.messages.get(name, DEFAULT_MESSAGES[name])

    def create_row(
        self,
        entity: Any,
        on_success: Optional[Callable[[MutationResult], None]] = None,
    ) -> None:
        self._mutate(
            "create",
            lambda cb: self.provider.create(entity, cb),
            on_success,
        )

    def update_row(
        self,
        entity: Any,
        on_success: Optional[Callable[[MutationResult], None]] = None,
    ) -> None:
        self._mutate(
            "update",
            lambda cb: self.provider.update(entity, cb),
            on_success,
        )

    def remove_rows(
        self,
        ids: Iterable[RowIdType],
        on_success: Optional[Callable[[MutationResult], None]] = None,
    ) -> None:
        id_list = list(ids)
        if not self._check_ids("remove", id_list):
            return
        self._mutate(
            "remove",
            lambda cb: self.provider.remove(id_list, cb),
            on_success,
        )

    def assign_rows(
        self,
        ids: Iterable[RowIdType],
        on_success: Optional[Callable[[MutationResult], None]] = None,
    ) -> None:
        id_list = list(ids)
        parent_id = self._check_parent("assign")
        if parent_id is None or not self._check_ids("assign", id_list):
            return
        self._mutate(
            "assign",
            lambda cb: self.provider.assign(parent_id, id_list, cb),
            on_success,
        )

    def unassign_rows(
        self,
        ids: Iterable[RowIdType],
        on_success: Optional[Callable[[MutationResult], None]] = None,
    ) -> None:
        id_list = list(ids)
        parent_id = self._check_parent("unassign")
        if parent_id is None or not self._check_ids("unassign", id_list):
            return
        self._mutate(
            "unassign",
            lambda cb: self.provider.unassign(parent_id, id_list, cb),
            on_success,
        )

    def _check_ids(self, op: str, ids: List[RowIdType]) -> bool:
        if ids:
            return True
        self.handle_failure(
            ValidationFailure(
                f"Nothing to {op}",
                key="general.select_at_least_one_record",
            ),
            default="Please select at least one record",
        )
        return False

    def _check_parent(self, op: str) -> Optional[RowIdType]:
        parent_id = self.parent_id()
        if parent_id is None:
            self.handle_failure(
                ValidationFailure(f"Cannot {op} without a parent entity")
            )
        return parent_id

    def _mutate(
        self,
        op: str,
        call: Callable[[Callable[["Work"], None]], None],
        on_success: Optional[Callable[[MutationResult], None]],
    ) -> None:
        """Run a write operation of the provider.

        On success the success message is shown, `on_success` is called and
        the current page is reloaded. On failure the failure is reported and
        nothing else changes.
        """

        done = False

        def on_done(work: "Work") -> None:
            nonlocal done
            if done:
                logger.debug("%s: %s completed twice", self, op)
                return
            done = True
            self._pending_mutations = max(0, self._pending_mutations - 1)
            if self._closed:
                logger.debug("%s: %s completed after close", self, op)
                return
            self._update_busy()

            error = work.error
            result = work.result
            if error is None:
                if not isinstance(result, MutationResult):
                    error = TransportFailure(
                        f"{op} returned {result.__class__.__name__}",
                        details=result,
                    )
                elif not result.ok:
                    error = TransportFailure(
                        result.message or f"{op} ended with {result.status}",
                        details=result.details,
                    )

            if error is not None:
                key, default = self.message(f"{op}.error")
                self.handle_failure(error, key, default)
                return

            logger.debug("%s: %s succeeded", self, op)
            self.show_message(self.t_pair(self.message(f"{op}.success")))
            if on_success is not None:
                on_success(result)
            self.refresh()

        if self._closed:
            logger.warning("%s: %s after close is ignored", self, op)
            return

        self._pending_mutations += 1
        self._update_busy()
        logger.debug("%s: starting %s", self, op)
        try:
            call(on_done)
        except Exception as e:
            logger.error("%s: %s failed to start", self, op, exc_info=True)
            Work(fn=None, callback=on_done).complete(error=e)
