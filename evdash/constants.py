# Constants shared by the data layer and the Qt runtime.
from enum import StrEnum
from typing import Any, Literal, Tuple, Union

# Filter types.
FILTER_TYPE_TEXT = "text"
FILTER_TYPE_DROPDOWN = "dropdown"
FILTER_TYPE_DIALOG_TABLE = "dialog-table"
FILTER_TYPE_DATE = "date"
FILTER_TYPE_DATE_RANGE = "date-range"

FILTER_TYPES = (
    FILTER_TYPE_TEXT,
    FILTER_TYPE_DROPDOWN,
    FILTER_TYPE_DIALOG_TABLE,
    FILTER_TYPE_DATE,
    FILTER_TYPE_DATE_RANGE,
)

# The value of a dropdown entry that stands for "no restriction".
FILTER_ALL_KEY = "all"

# The id (and http id) of the free-text search filter.
SEARCH_FILTER_ID = "Search"

DEFAULT_PAGE_SIZE = 50

# The status reported by the backend for a successful mutation.
REST_SUCCESS = "Success"

SortDirection = Literal["asc", "desc"]
SORT_DIRECTIONS = ("asc", "desc")

# A row ID is a string or an int in the simple case or a tuple of values
# for composite identities.
RowIdType = Union[str, int, Tuple[Any, ...]]


class TableMode(StrEnum):
    READ_WRITE = "RW"
    READ_ONLY = "RO"


class DialogMode(StrEnum):
    VIEW = "V"
    EDIT = "E"
    CREATE = "C"


class ButtonType(StrEnum):
    OK = "OK"
    CANCEL = "CANCEL"
    YES = "YES"
    NO = "NO"


class ButtonColor(StrEnum):
    BASIC = ""
    PRIMARY = "primary"
    ACCENT = "accent"
    WARN = "warn"


class ButtonAction(StrEnum):
    """Identifiers of the actions that most tables share."""

    ADD = "add"
    ASSIGN = "assign"
    CREATE = "create"
    EDIT = "edit"
    EXPORT = "export"
    REFRESH = "refresh"
    REMOVE = "remove"
    RESET_FILTERS = "reset_filters"
    UNASSIGN = "unassign"
    VIEW = "view"


class ScreenSize(StrEnum):
    """Dialog sizes as a percentage of the available screen."""

    XXS = "20"
    XS = "30"
    S = "40"
    SM = "45"
    M = "50"
    ML = "55"
    L = "60"
    XL = "70"
    XXL = "75"
    XXXL = "80"
    XXXXL = "90"
