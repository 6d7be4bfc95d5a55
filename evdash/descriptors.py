"""Declarative description of a table for the view layer.

A `TableDescriptor` is what a view needs to render a table: the table-level
capabilities, the columns, the filters and the action catalogue. It is
immutable; the data source rebuilds it when its mode or its parent entity
changes.

Action visibility and enablement are *not* part of the immutable data.
They are predicates, evaluated each time they are asked for, because they
depend on the selection and on the authorization flags of the parent
entity, both of which change while the descriptor stays the same.
"""

from enum import StrEnum
from typing import Any, Callable, FrozenSet, Optional, Tuple

from attrs import field, frozen

from evdash.constants import ButtonColor, RowIdType, SortDirection, TableMode
from evdash.filters import FilterDef


class ActionKind(StrEnum):
    CREATE = "create"
    EDIT = "edit"
    ASSIGN = "assign"
    UNASSIGN = "unassign"
    REMOVE = "remove"
    EXPORT = "export"
    CUSTOM = "custom"


@frozen
class ColumnDef:
    """One column of a table.

    Attributes:
        id: Dotted path of the value in the row; also the sort field.
        name: Translation key of the header.
        sortable: Whether the user can sort by this column.
        sorted: Whether this is the default sort column.
        direction: The default direction when `sorted` is set.
        visible: Whether the column is shown.
        class_name: Styling hint for cells.
        header_class: Styling hint for the header.
        formatter: Optional callable that turns (value, row) into text.
    """

    id: str
    name: str = ""
    sortable: bool = False
    sorted: bool = False
    direction: SortDirection = "asc"
    visible: bool = True
    class_name: str = ""
    header_class: str = ""
    formatter: Optional[Callable[[Any, Any], Optional[str]]] = field(
        default=None, eq=False, repr=False
    )


@frozen
class RowSelectionDef:
    enabled: bool = False
    multiple: bool = False


@frozen
class TableDef:
    """Table-level capabilities.

    Attributes:
        id: Identifier of the table (used for per-table settings).
        class_name: Styling hint.
        row_id_field: Dotted path of the identity of a row.
        row_selection: Whether rows can be selected, and how many.
        search_enabled: Whether the free-text search is shown.
        footer_enabled: Whether the footer (pager) is shown.
        is_editable: Whether cells can be edited in place.
    """

    id: str = ""
    class_name: str = ""
    row_id_field: str = "id"
    row_selection: RowSelectionDef = field(factory=RowSelectionDef)
    search_enabled: bool = False
    footer_enabled: bool = True
    is_editable: bool = False


@frozen
class ActionContext:
    """What the predicates and handlers of an action get to see.

    Attributes:
        source: The data source that owns the action.
        auth: The entity whose authorization flags decide what the user may
            do (usually the parent entity of the table).
        selection: The identities of the selected rows.
        row: The row a row-level action was triggered on.
    """

    source: Any = field(eq=False, repr=False)
    auth: Any = None
    selection: FrozenSet[RowIdType] = field(
        factory=frozenset, converter=frozenset
    )
    row: Any = None


def always(ctx: ActionContext) -> bool:
    return True


@frozen
class ActionDescriptor:
    """Display metadata and behaviour of one action.

    Attributes:
        id: The identifier of the action.
        kind: The variant of the action.
        name: Translation key of the label.
        icon: Name of the icon.
        tooltip: Translation key of the tooltip.
        color: Button color hint.
        visible_if: Predicate telling whether the action is shown.
        enabled_if: Predicate telling whether the action can be triggered.
        handler: Performs the action.
    """

    id: str
    kind: ActionKind
    name: str = ""
    icon: str = ""
    tooltip: str = ""
    color: ButtonColor = ButtonColor.BASIC
    visible_if: Callable[[ActionContext], bool] = field(
        default=always, eq=False, repr=False
    )
    enabled_if: Callable[[ActionContext], bool] = field(
        default=always, eq=False, repr=False
    )
    handler: Optional[Callable[[ActionContext], None]] = field(
        default=None, eq=False, repr=False
    )

    def is_visible(self, ctx: ActionContext) -> bool:
        return bool(self.visible_if(ctx))

    def is_enabled(self, ctx: ActionContext) -> bool:
        return self.is_visible(ctx) and bool(self.enabled_if(ctx))


@frozen
class TableDescriptor:
    """Everything the view needs to render a table in a given mode."""

    mode: TableMode
    table: TableDef
    columns: Tuple[ColumnDef, ...] = field(factory=tuple, converter=tuple)
    actions: Tuple[ActionDescriptor, ...] = field(
        factory=tuple, converter=tuple
    )
    filters: Tuple[FilterDef, ...] = field(factory=tuple, converter=tuple)

    def get_column(self, column_id: str) -> Optional[ColumnDef]:
        for column in self.columns:
            if column.id == column_id:
                return column
        return None

    def get_action(self, action_id: str) -> Optional[ActionDescriptor]:
        for action in self.actions:
            if action.id == action_id:
                return action
        return None

    def visible_actions(
        self, ctx: ActionContext
    ) -> Tuple[ActionDescriptor, ...]:
        """The actions to show right now."""
        return tuple(a for a in self.actions if a.is_visible(ctx))

    def default_sort(self) -> Optional[ColumnDef]:
        for column in self.columns:
            if column.sorted:
                return column
        return None

