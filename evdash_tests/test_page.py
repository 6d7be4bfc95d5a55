import pytest

from evdash.constants import REST_SUCCESS
from evdash.page import MutationResult, Page


def test_page_rows_become_tuple():
    page = Page(["a", "b"], 5)
    assert page.rows == ("a", "b")
    assert len(page) == 2


def test_total_count_not_below_rows():
    with pytest.raises(ValueError):
        Page(["a", "b"], 1)


def test_empty_page():
    page = Page.empty()
    assert page.rows == ()
    assert page.total_count == 0
    assert page == Page()


def test_fits():
    page = Page(["a", "b"], 2)
    assert page.fits(2)
    assert not page.fits(1)


def test_mutation_result():
    assert MutationResult().ok
    assert MutationResult().status == REST_SUCCESS
    assert not MutationResult(status="Error", message="nope").ok


def test_mutation_result_details_not_compared():
    assert MutationResult(details={"a": 1}) == MutationResult(details=None)
