from datetime import date, datetime, timezone

from evdash.constants import FILTER_TYPE_DATE_RANGE, FILTER_TYPE_DROPDOWN
from evdash.filters import (
    DateRange,
    FilterDef,
    FilterState,
    PagingState,
    SortState,
)
from evdash.query import Query, build_query, format_date


def make_state():
    return FilterState(
        [
            FilterDef(
                id="status",
                type=FILTER_TYPE_DROPDOWN,
                http_id="Status",
                multiple=True,
            ),
            FilterDef(id="city", http_id="City"),
            FilterDef(
                id="when",
                type=FILTER_TYPE_DATE_RANGE,
                start_http_id="From",
                end_http_id="To",
            ),
        ]
    )


def test_empty_state():
    query = build_query(make_state(), PagingState(), SortState())
    assert query == Query()
    assert query.sort_field is None
    assert query.sort_direction is None


def test_filters_use_http_ids():
    state = make_state()
    state.set("status", ["b", "a"])
    state.set("city", "Cluj")
    query = build_query(state, PagingState(), SortState())
    assert dict(query.filters) == {"Status": ("a", "b"), "City": "Cluj"}


def test_date_range():
    state = make_state()
    state.set("when", DateRange(start=date(2024, 3, 1)))
    query = build_query(state, PagingState(), SortState())
    assert dict(query.filters) == {"From": "2024-03-01"}

    state.set("when", DateRange(date(2024, 3, 1), date(2024, 3, 31)))
    query = build_query(state, PagingState(), SortState())
    assert dict(query.filters) == {"From": "2024-03-01", "To": "2024-03-31"}


def test_static_filters():
    query = build_query(
        make_state(),
        PagingState(),
        SortState(),
        {"SiteID": 7, "Issuer": True, "Owner": None, "Tags": {"y", "x"}},
    )
    assert dict(query.filters) == {
        "SiteID": "7",
        "Issuer": "true",
        "Tags": ("x", "y"),
    }


def test_paging_and_sort():
    query = build_query(
        make_state(),
        PagingState(page_index=3, page_size=10),
        SortState(column_id="name", direction="desc"),
    )
    assert query.page == 3
    assert query.page_size == 10
    assert query.skip == 30
    assert query.sort_field == "name"
    assert query.sort_direction == "desc"


def test_same_state_same_query():
    state = make_state()
    state.set("status", ["a"])
    paging = PagingState()
    sort = SortState(column_id="name")
    assert build_query(state, paging, sort) == build_query(
        state, paging, sort
    )


def test_as_dict():
    query = Query(
        filters={"Status": ("a", "b"), "City": "Cluj"},
        page=1,
        page_size=20,
        sort_field="name",
        sort_direction="asc",
    )
    assert query.as_dict() == {
        "filters": {"Status": ["a", "b"], "City": "Cluj"},
        "page": 1,
        "pageSize": 20,
        "sortField": "name",
        "sortDirection": "asc",
    }
    assert "sortField" not in Query().as_dict()


def test_to_http_params():
    query = Query(
        filters={"Status": ("a", "b")},
        page=2,
        page_size=25,
        sort_field="name",
        sort_direction="desc",
    )
    assert query.to_http_params() == {
        "Status": "a|b",
        "Skip": 50,
        "Limit": 25,
        "SortFields": "-name",
    }


def test_format_date():
    assert format_date(date(2024, 1, 2)) == "2024-01-02"
    assert format_date(datetime(2024, 1, 2, 3, 4)) == "2024-01-02T03:04:00"
    aware = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
    assert format_date(aware) == "2024-01-02T03:04:05.000+00:00"
