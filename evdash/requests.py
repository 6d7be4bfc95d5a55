import logging
from enum import StrEnum
from typing import Any, Callable, Dict, List, Optional

from attrs import define, field

from evdash.page import Page
from evdash.query import Query

logger = logging.getLogger(__name__)


class RequestStatus(StrEnum):
    CREATED = "created"
    PENDING = "pending"
    DONE = "done"
    FAILED = "failed"
    STALE = "stale"


TERMINAL_STATUSES = (
    RequestStatus.DONE,
    RequestStatus.FAILED,
    RequestStatus.STALE,
)


@define(eq=False)
class PageRequest:
    """A lazy, single-shot request for a page of rows.

    Nothing happens when the request is created. The first call to
    `subscribe()` hands the request to its issuer, which builds the query,
    assigns the unique identifier and calls the data provider. Later calls
    only register callbacks.

    Each callback is called exactly once, when the request reaches a
    terminal state (or right away if it already did). The callback receives
    the request and inspects `page`, `error` and `stale`.

    Attributes:
        issuer: Called with the request on the first `subscribe()`.
        uniq_id: The token of the request; -1 until the request is issued.
        query: The query that was sent; None until the request is issued
            or if the request was resolved without asking the provider.
        status: Where the request is in its life cycle.
        page: The page that was loaded.
        error: The failure, if the request failed.
    """

    issuer: Callable[["PageRequest"], None] = field(repr=False)
    uniq_id: int = field(default=-1)
    query: Optional[Query] = field(default=None)
    status: RequestStatus = field(default=RequestStatus.CREATED)
    page: Optional[Page] = field(default=None, repr=False)
    error: Optional[BaseException] = field(default=None)
    callbacks: List[Callable[["PageRequest"], None]] = field(
        factory=list, repr=False
    )

    @property
    def done(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def stale(self) -> bool:
        return self.status == RequestStatus.STALE

    @property
    def ok(self) -> bool:
        return self.status == RequestStatus.DONE

    def subscribe(
        self, callback: Optional[Callable[["PageRequest"], None]] = None
    ) -> "PageRequest":
        """Register a callback and issue the request if not yet issued."""
        if callback is not None:
            if self.done:
                self._call(callback)
            else:
                self.callbacks.append(callback)
        if self.status == RequestStatus.CREATED:
            self.status = RequestStatus.PENDING
            self.issuer(self)
        return self

    def resolve(self, page: Page) -> None:
        if self.done:
            return
        self.page = page
        self._finish(RequestStatus.DONE)

    def fail(self, error: BaseException) -> None:
        if self.done:
            return
        self.error = error
        self._finish(RequestStatus.FAILED)

    def discard(self) -> None:
        """Mark the request as superseded by a newer one."""
        if self.done:
            return
        self._finish(RequestStatus.STALE)

    def _finish(self, status: RequestStatus) -> None:
        self.status = status
        callbacks, self.callbacks = self.callbacks, []
        for callback in callbacks:
            self._call(callback)

    def _call(self, callback: Callable[["PageRequest"], None]) -> None:
        try:
            callback(self)
        except Exception:
            logger.error(
                "Exception in the callback of request %d",
                self.uniq_id,
                exc_info=True,
            )


class PageRequestManager:
    """Keeps track of the page requests that are in flight.

    Only the most recent request is allowed to complete: adding a request
    discards every request that was added before it, so a result that
    arrives for one of those is not found anymore and is dropped.

    Attributes:
        uniq_gen: The generator of unique, monotonically increasing tokens.
        requests: The requests in progress, by token.
    """

    uniq_gen: int
    requests: Dict[int, PageRequest]

    def __init__(self) -> None:
        self.uniq_gen = 0
        self.requests = {}

    @property
    def latest_id(self) -> int:
        """The token of the most recently added request (-1 if none)."""
        return self.uniq_gen - 1

    def new_request(
        self, issuer: Callable[[PageRequest], None]
    ) -> "PageRequest":
        """Create a new request that is not yet issued."""
        return PageRequest(issuer=issuer)

    def add_request(self, req: "PageRequest", track: bool = True) -> None:
        """Give the request a token and supersede older ones.

        Args:
            req: The request to add.
            track: If False the request gets a token but is not kept in the
                list of requests in progress (for requests that complete
                synchronously).
        """
        uniq_id = self.uniq_gen
        self.uniq_gen += 1
        req.uniq_id = uniq_id

        # Older requests can no longer complete.
        self.discard_all()
        if track:
            self.requests[uniq_id] = req

    def take_request(self, uniq_id: int) -> Optional["PageRequest"]:
        """Remove and return a request if it is still current.

        Returns:
            None for requests that were superseded or already completed.
        """
        req = self.requests.pop(uniq_id, None)
        if req is None:
            logger.debug("Request %d is no longer current", uniq_id)
            return None
        if uniq_id != self.latest_id:
            # Should not happen: add_request forgets older requests.
            logger.debug("Request %d superseded by %d", uniq_id, self.latest_id)
            req.discard()
            return None
        return req

    def discard_all(self) -> List["PageRequest"]:
        """Forget all requests in progress and mark them stale."""
        result = list(self.requests.values())
        self.requests.clear()
        for req in result:
            logger.debug("Discarding request %d", req.uniq_id)
            req.discard()
        return result

    @property
    def has_pending(self) -> bool:
        return len(self.requests) > 0


def describe(req: PageRequest) -> Dict[str, Any]:
    """A loggable summary of a request."""
    return {
        "uniq_id": req.uniq_id,
        "status": str(req.status),
        "query": req.query.as_dict() if req.query is not None else None,
        "total": req.page.total_count if req.page is not None else None,
        "error": str(req.error) if req.error is not None else None,
    }
