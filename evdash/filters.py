"""Filter, paging and sort state of a table.

A table declares its filters through `FilterDef` instances. The current
values live in a `FilterState` that belongs to exactly one data source; the
query builder reads it on every reload.

Values are normalised when they are stored:

- strings are stripped;
- collections of strings become sorted tuples;
- date ranges and dates are kept as they are.

A value that carries no restriction (see `is_unset`) is equivalent to the
filter not being set at all.
"""

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple

from attrs import define, field, frozen
from attrs.validators import ge, gt, in_
from pyrsistent import pmap
from pyrsistent.typing import PMap

from evdash.constants import (
    DEFAULT_PAGE_SIZE,
    FILTER_ALL_KEY,
    FILTER_TYPE_DATE,
    FILTER_TYPE_DATE_RANGE,
    FILTER_TYPE_DIALOG_TABLE,
    FILTER_TYPE_DROPDOWN,
    FILTER_TYPE_TEXT,
    FILTER_TYPES,
    SEARCH_FILTER_ID,
    SORT_DIRECTIONS,
    SortDirection,
)

logger = logging.getLogger(__name__)


@frozen
class DateRange:
    """An interval of time; either end may be open."""

    start: Optional[date] = None
    end: Optional[date] = None

    @property
    def is_empty(self) -> bool:
        return self.start is None and self.end is None


@frozen
class FilterItem:
    """One entry of a dropdown filter."""

    key: str
    value: str


@frozen
class FilterDef:
    """Describes one filter of a table.

    Attributes:
        id: The identifier used by the view and by `set_filter`.
        http_id: The name of the parameter sent to the backend. Defaults to
            `id`.
        type: One of the `FILTER_TYPE_*` constants.
        name: Translation key of the label.
        default_value: The value restored by `FilterState.reset()`.
        multiple: Whether the filter accepts several values.
        items: The choices of a dropdown filter.
        visible: Whether the view should show the filter.
        start_http_id: For date ranges, the parameter that receives the
            start of the interval.
        end_http_id: For date ranges, the parameter that receives the end
            of the interval.
        dependent_filters: Filters that are reset to their default value
            each time this filter changes.
    """

    id: str
    type: str = field(default=FILTER_TYPE_TEXT, validator=in_(FILTER_TYPES))
    http_id: str = field(default="")
    name: str = ""
    default_value: Any = None
    multiple: bool = False
    items: Tuple[FilterItem, ...] = field(factory=tuple, converter=tuple)
    visible: bool = True
    start_http_id: str = "StartDateTime"
    end_http_id: str = "EndDateTime"
    dependent_filters: Tuple[str, ...] = field(
        factory=tuple, converter=tuple
    )

    def __attrs_post_init__(self):
        if not self.http_id:
            object.__setattr__(self, "http_id", self.id)


def search_filter_def() -> FilterDef:
    """The free-text search box every searchable table has."""
    return FilterDef(
        id=SEARCH_FILTER_ID,
        type=FILTER_TYPE_TEXT,
        name="general.search",
        visible=False,
    )


def is_unset(value: Any) -> bool:
    """Tell if a filter value carries no restriction."""
    if value is None:
        return True
    if isinstance(value, str):
        return value == "" or value == FILTER_ALL_KEY
    if isinstance(value, DateRange):
        return value.is_empty
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0 or all(
            v == FILTER_ALL_KEY for v in value
        )
    return False


def normalize_value(fdef: FilterDef, value: Any) -> Any:
    """Check and normalise a value for the given filter.

    Raises:
        ValueError: the value does not have the shape the filter expects.
    """
    if value is None:
        return None

    if fdef.type == FILTER_TYPE_DATE_RANGE:
        if not isinstance(value, DateRange):
            raise ValueError(
                f"Filter {fdef.id} expects a DateRange, got "
                f"{value.__class__.__name__}"
            )
        return value

    if fdef.type == FILTER_TYPE_DATE:
        if not isinstance(value, date):
            raise ValueError(
                f"Filter {fdef.id} expects a date, got "
                f"{value.__class__.__name__}"
            )
        return value

    if fdef.multiple and fdef.type in (
        FILTER_TYPE_DROPDOWN,
        FILTER_TYPE_DIALOG_TABLE,
    ):
        if isinstance(value, str):
            value = [value]
        if not isinstance(value, (list, tuple, set, frozenset)):
            raise ValueError(
                f"Filter {fdef.id} expects a collection of strings, got "
                f"{value.__class__.__name__}"
            )
        for item in value:
            if not isinstance(item, str):
                raise ValueError(
                    f"Filter {fdef.id} expects strings, got "
                    f"{item.__class__.__name__}"
                )
        return tuple(sorted(set(v.strip() for v in value)))

    if not isinstance(value, str):
        raise ValueError(
            f"Filter {fdef.id} expects a string, got "
            f"{value.__class__.__name__}"
        )
    return value.strip()


class FilterState:
    """The current values of the filters of a table.

    Attributes:
        defs: The definitions of the filters, by id.
        values: The current values, by id. Unset filters may be missing or
            hold an unset value.
    """

    defs: Dict[str, FilterDef]
    values: Dict[str, Any]

    def __init__(self, defs: Optional[Iterable[FilterDef]] = None) -> None:
        self.defs = {}
        self.values = {}
        for fdef in defs or []:
            self.add_def(fdef)

    def add_def(self, fdef: FilterDef) -> None:
        """Register a filter and set it to its default value."""
        self.defs[fdef.id] = fdef
        self.values[fdef.id] = normalize_value(fdef, fdef.default_value)

    def get(self, filter_id: str, default: Any = None) -> Any:
        value = self.values.get(filter_id)
        if is_unset(value):
            return default
        return value

    def is_set(self, filter_id: str) -> bool:
        return not is_unset(self.values.get(filter_id))

    def set(self, filter_id: str, value: Any) -> bool:
        """Change the value of a filter.

        Args:
            filter_id: The id of the filter.
            value: The new value.

        Returns:
            True if the effective value changed, in which case the
            dependent filters were reset as well.

        Raises:
            KeyError: no such filter.
            ValueError: the value has the wrong shape.
        """
        fdef = self.defs.get(filter_id)
        if fdef is None:
            raise KeyError(f"Unknown filter `{filter_id}`")

        new_value = normalize_value(fdef, value)
        old_value = self.values.get(filter_id)
        if self._effective(old_value) == self._effective(new_value):
            self.values[filter_id] = new_value
            return False

        self.values[filter_id] = new_value
        logger.debug(
            "Filter %s changed from %r to %r", filter_id, old_value, new_value
        )
        for dep_id in fdef.dependent_filters:
            dep = self.defs.get(dep_id)
            if dep is None:
                logger.warning(
                    "Filter %s lists unknown dependent filter %s",
                    filter_id,
                    dep_id,
                )
                continue
            self.values[dep_id] = normalize_value(dep, dep.default_value)
        return True

    def reset(self) -> bool:
        """Restore the default value of every filter.

        Returns:
            True if any effective value changed.
        """
        changed = False
        for fdef in self.defs.values():
            new_value = normalize_value(fdef, fdef.default_value)
            if self._effective(self.values.get(fdef.id)) != self._effective(
                new_value
            ):
                changed = True
            self.values[fdef.id] = new_value
        return changed

    def active(self) -> List[Tuple[FilterDef, Any]]:
        """The filters that restrict the result, in declaration order."""
        return [
            (fdef, self.values[fdef.id])
            for fdef in self.defs.values()
            if not is_unset(self.values.get(fdef.id))
        ]

    def snapshot(self) -> PMap[str, Any]:
        """An immutable copy of the set values."""
        return pmap({fdef.id: value for fdef, value in self.active()})

    @staticmethod
    def _effective(value: Any) -> Any:
        return None if is_unset(value) else value

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, FilterState):
            return NotImplemented
        return self.snapshot() == other.snapshot()

    def __repr__(self) -> str:
        return f"FilterState({dict(self.snapshot())!r})"


@define
class PagingState:
    """Which page of the result is shown."""

    page_index: int = field(default=0, validator=ge(0))
    page_size: int = field(default=DEFAULT_PAGE_SIZE, validator=gt(0))

    @property
    def skip(self) -> int:
        return self.page_index * self.page_size


@define
class SortState:
    """The single column the result is sorted by, if any."""

    column_id: Optional[str] = None
    direction: SortDirection = field(
        default="asc", validator=in_(SORT_DIRECTIONS)
    )

    @property
    def is_active(self) -> bool:
        return bool(self.column_id)
