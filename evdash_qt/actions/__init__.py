from evdash_qt.actions.assign import AssignAction, UnassignAction  # noqa: F401
from evdash_qt.actions.base import (  # noqa: F401
    DialogAction,
    TableAction,
    is_cancelled,
)
from evdash_qt.actions.create import CreateAction  # noqa: F401
from evdash_qt.actions.custom import (  # noqa: F401
    CustomAction,
    RefreshAction,
    ResetFiltersAction,
)
from evdash_qt.actions.edit import EditAction  # noqa: F401
from evdash_qt.actions.export import ExportAction  # noqa: F401
from evdash_qt.actions.remove import RemoveAction  # noqa: F401
