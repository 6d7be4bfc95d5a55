"""Tests for PageRequest and PageRequestManager in evdash.requests."""

import unittest
from unittest.mock import MagicMock

from evdash.page import Page
from evdash.query import Query
from evdash.requests import (
    PageRequest,
    PageRequestManager,
    RequestStatus,
    describe,
)


class TestPageRequest(unittest.TestCase):
    def test_lazy(self) -> None:
        """Nothing is issued until the first subscription."""
        issuer = MagicMock()
        req = PageRequest(issuer=issuer)

        self.assertEqual(req.status, RequestStatus.CREATED)
        self.assertEqual(req.uniq_id, -1)
        issuer.assert_not_called()

        req.subscribe()
        req.subscribe()
        issuer.assert_called_once_with(req)
        self.assertEqual(req.status, RequestStatus.PENDING)

    def test_resolve(self) -> None:
        req = PageRequest(issuer=MagicMock())
        callback = MagicMock()
        req.subscribe(callback)

        page = Page(["a"], 1)
        req.resolve(page)
        req.resolve(Page.empty())

        callback.assert_called_once_with(req)
        self.assertTrue(req.ok)
        self.assertTrue(req.done)
        self.assertIs(req.page, page)

    def test_fail(self) -> None:
        req = PageRequest(issuer=MagicMock())
        callback = MagicMock()
        req.subscribe(callback)

        error = ValueError("x")
        req.fail(error)
        req.discard()

        callback.assert_called_once_with(req)
        self.assertEqual(req.status, RequestStatus.FAILED)
        self.assertIs(req.error, error)
        self.assertFalse(req.ok)

    def test_discard(self) -> None:
        req = PageRequest(issuer=MagicMock())
        callback = MagicMock()
        req.subscribe(callback)
        req.discard()
        req.resolve(Page.empty())

        callback.assert_called_once_with(req)
        self.assertTrue(req.stale)
        self.assertIsNone(req.page)

    def test_subscribe_after_done(self) -> None:
        issuer = MagicMock()
        req = PageRequest(issuer=issuer)
        req.subscribe()
        req.resolve(Page.empty())

        callback = MagicMock()
        req.subscribe(callback)
        callback.assert_called_once_with(req)
        issuer.assert_called_once_with(req)

    def test_callback_errors_are_logged(self) -> None:
        req = PageRequest(issuer=MagicMock())
        after = MagicMock()
        req.subscribe(MagicMock(side_effect=RuntimeError("boom")))
        req.subscribe(after)

        with self.assertLogs("evdash.requests", level="ERROR"):
            req.resolve(Page.empty())
        after.assert_called_once_with(req)


class TestPageRequestManager(unittest.TestCase):
    def setUp(self) -> None:
        self.manager = PageRequestManager()

    def test_init(self) -> None:
        manager = PageRequestManager()
        self.assertEqual(manager.uniq_gen, 0)
        self.assertEqual(manager.requests, {})
        self.assertEqual(manager.latest_id, -1)
        self.assertFalse(manager.has_pending)

    def test_new_request(self) -> None:
        issuer = MagicMock()
        req = self.manager.new_request(issuer)
        self.assertIsInstance(req, PageRequest)
        self.assertIs(req.issuer, issuer)
        self.assertEqual(self.manager.requests, {})

    def test_add_request(self) -> None:
        req = self.manager.new_request(MagicMock())
        self.manager.add_request(req)

        self.assertEqual(req.uniq_id, 0)
        self.assertEqual(self.manager.uniq_gen, 1)
        self.assertEqual(self.manager.latest_id, 0)
        self.assertIs(self.manager.requests[0], req)
        self.assertTrue(self.manager.has_pending)

    def test_add_request_supersedes(self) -> None:
        first = self.manager.new_request(MagicMock())
        second = self.manager.new_request(MagicMock())
        first.status = RequestStatus.PENDING
        self.manager.add_request(first)
        self.manager.add_request(second)

        self.assertTrue(first.stale)
        self.assertEqual(self.manager.requests, {1: second})
        self.assertIsNone(self.manager.take_request(0))

    def test_add_request_untracked(self) -> None:
        first = self.manager.new_request(MagicMock())
        self.manager.add_request(first)
        second = self.manager.new_request(MagicMock())
        self.manager.add_request(second, track=False)

        self.assertEqual(second.uniq_id, 1)
        self.assertTrue(first.stale)
        self.assertFalse(self.manager.has_pending)

    def test_take_request(self) -> None:
        req = self.manager.new_request(MagicMock())
        self.manager.add_request(req)

        self.assertIs(self.manager.take_request(0), req)
        self.assertIsNone(self.manager.take_request(0))
        self.assertIsNone(self.manager.take_request(99))

    def test_take_request_not_latest(self) -> None:
        req = self.manager.new_request(MagicMock())
        self.manager.add_request(req)
        self.manager.add_request(self.manager.new_request(MagicMock()))
        # Put the old one back by hand.
        req.status = RequestStatus.PENDING
        self.manager.requests[0] = req

        self.assertIsNone(self.manager.take_request(0))
        self.assertTrue(req.stale)

    def test_discard_all(self) -> None:
        req = self.manager.new_request(MagicMock())
        self.manager.add_request(req)

        self.assertEqual(self.manager.discard_all(), [req])
        self.assertTrue(req.stale)
        self.assertEqual(self.manager.requests, {})


def test_describe():
    req = PageRequest(issuer=MagicMock(), uniq_id=4, query=Query(page=1))
    req.resolve(Page(["a"], 9))
    assert describe(req) == {
        "uniq_id": 4,
        "status": "done",
        "query": Query(page=1).as_dict(),
        "total": 9,
        "error": None,
    }


def test_describe_not_issued():
    result = describe(PageRequest(issuer=MagicMock()))
    assert result["query"] is None
    assert result["total"] is None
    assert result["status"] == "created"
