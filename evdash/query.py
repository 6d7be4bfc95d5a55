"""Turns the state of a table into the query sent to a data provider.

`build_query` is a pure function: the same filter, paging and sort state
always produce equal `Query` instances. The data source relies on that to
compare requests and the tests rely on it to check what was asked for.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from attrs import field, frozen
from pyrsistent import pmap
from pyrsistent.typing import PMap

from evdash.constants import FILTER_TYPE_DATE_RANGE, SortDirection
from evdash.filters import DateRange, FilterState, PagingState, SortState
from evdash.filters import is_unset

logger = logging.getLogger(__name__)

QueryValue = Union[str, Tuple[str, ...]]


def _to_pmap(value: Mapping[str, QueryValue]) -> PMap[str, QueryValue]:
    return pmap(value)


@frozen
class Query:
    """Transport-agnostic description of one page request.

    Attributes:
        filters: The restrictions, keyed by the name the backend expects.
            Multi-valued filters hold a sorted tuple.
        page: The 0-based index of the page.
        page_size: The number of rows in a page.
        sort_field: The column to sort by, if any.
        sort_direction: `asc` or `desc`; only present with `sort_field`.
    """

    filters: PMap[str, QueryValue] = field(factory=pmap, converter=_to_pmap)
    page: int = 0
    page_size: int = 50
    sort_field: Optional[str] = None
    sort_direction: Optional[SortDirection] = None

    @property
    def skip(self) -> int:
        return self.page * self.page_size

    def as_dict(self) -> Dict[str, Any]:
        """The wire-independent representation of the query."""
        result: Dict[str, Any] = {
            "filters": {
                k: list(v) if isinstance(v, tuple) else v
                for k, v in self.filters.items()
            },
            "page": self.page,
            "pageSize": self.page_size,
        }
        if self.sort_field:
            result["sortField"] = self.sort_field
            result["sortDirection"] = self.sort_direction
        return result

    def to_http_params(self) -> Dict[str, Any]:
        """The query as REST parameters.

        Multi-valued filters are joined with `|`, paging becomes `Skip` and
        `Limit` and sorting becomes `SortFields`, with a `-` prefix for
        descending order.
        """
        result: Dict[str, Any] = {
            k: "|".join(v) if isinstance(v, tuple) else v
            for k, v in self.filters.items()
        }
        result["Skip"] = self.skip
        result["Limit"] = self.page_size
        if self.sort_field:
            prefix = "-" if self.sort_direction == "desc" else ""
            result["SortFields"] = f"{prefix}{self.sort_field}"
        return result


def format_date(value: date) -> str:
    """ISO 8601 form used in queries.

    Naive date-times are sent as they are; aware ones keep their offset.
    """
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.isoformat(timespec="milliseconds")
    return value.isoformat()


def _query_value(value: Any) -> QueryValue:
    if isinstance(value, date):
        return format_date(value)
    if isinstance(value, (list, tuple, set, frozenset)):
        return tuple(sorted(str(v) for v in value))
    return str(value)


def build_query(
    filter_state: FilterState,
    paging: PagingState,
    sort: SortState,
    static_filters: Optional[Mapping[str, Any]] = None,
) -> Query:
    """Build the query for the current state of a table.

    Args:
        filter_state: The values of the filters. Unset filters are left out.
        paging: The page to request.
        sort: The sort column; ignored if inactive.
        static_filters: Restrictions that do not come from the user (the
            identity of a parent entity, for example). Merged last; unset
            values are left out as well.

    Returns:
        The query.
    """
    filters: Dict[str, QueryValue] = {}
    for fdef, value in filter_state.active():
        if fdef.type == FILTER_TYPE_DATE_RANGE:
            assert isinstance(value, DateRange)
            if value.start is not None:
                filters[fdef.start_http_id] = format_date(value.start)
            if value.end is not None:
                filters[fdef.end_http_id] = format_date(value.end)
            continue
        filters[fdef.http_id] = _query_value(value)

    for key, value in (static_filters or {}).items():
        if is_unset(value):
            continue
        if isinstance(value, bool):
            value = "true" if value else "false"
        filters[key] = _query_value(value)

    if sort.is_active:
        sort_field = sort.column_id
        sort_direction = sort.direction
    else:
        sort_field = None
        sort_direction = None

    return Query(
        filters=filters,
        page=paging.page_index,
        page_size=paging.page_size,
        sort_field=sort_field,
        sort_direction=sort_direction,
    )
