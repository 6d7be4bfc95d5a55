from typing import Any, Generic, Optional, Sequence, Tuple, TypeVar

from attrs import field, frozen

from evdash.constants import REST_SUCCESS

T = TypeVar("T")


def _to_tuple(value: Sequence[Any]) -> Tuple[Any, ...]:
    return tuple(value)


@frozen
class Page(Generic[T]):
    """A page of rows as returned by a data provider.

    Attributes:
        rows: The rows in the page, in display order.
        total_count: The number of rows that match the query across all
            pages. Never smaller than the number of rows in this page.
    """

    rows: Tuple[T, ...] = field(factory=tuple, converter=_to_tuple)
    total_count: int = field(default=0)

    @total_count.validator
    def _check_total_count(self, attribute, value):
        if value < len(self.rows):
            raise ValueError(
                f"Total count {value} is smaller than the number of rows "
                f"in the page ({len(self.rows)})"
            )

    @classmethod
    def empty(cls) -> "Page[T]":
        return cls(rows=(), total_count=0)

    def fits(self, page_size: int) -> bool:
        """Tell if the page respects the size that was requested."""
        return len(self.rows) <= page_size

    def __len__(self) -> int:
        return len(self.rows)


@frozen
class MutationResult:
    """The outcome of a write operation (create, update, remove, ...).

    Attributes:
        status: The status reported by the backend. Anything other than
            `Success` is a failure.
        message: Optional message from the backend.
        details: The raw response, kept for logging.
    """

    status: str = REST_SUCCESS
    message: Optional[str] = None
    details: Any = field(default=None, eq=False, repr=False)

    @property
    def ok(self) -> bool:
        return self.status == REST_SUCCESS
