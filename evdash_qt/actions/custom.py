from typing import Any, Callable, Optional

from evdash.constants import ButtonAction
from evdash.descriptors import ActionContext, ActionKind
from evdash_qt.actions.base import TableAction


class CustomAction(TableAction):
    """An action whose behaviour is a plain callable."""

    kind = ActionKind.CUSTOM
    handler: Optional[Callable[[ActionContext], None]]

    def __init__(
        self,
        handler: Optional[Callable[[ActionContext], None]] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.handler = handler

    def trigger(self, actx: ActionContext) -> None:
        if self.handler is None:
            raise NotImplementedError(f"{self!r} has no handler")
        self.handler(actx)


class RefreshAction(CustomAction):
    id = ButtonAction.REFRESH
    name = "general.refresh"
    icon = "refresh"

    def trigger(self, actx: ActionContext) -> None:
        self.source_of(actx).refresh()


class ResetFiltersAction(CustomAction):
    """Clears the search and the filters, then reloads."""

    id = ButtonAction.RESET_FILTERS
    name = "general.reset_filters"
    icon = "filter_alt_off"

    def trigger(self, actx: ActionContext) -> None:
        source = self.source_of(actx)
        source.reset_filters()
        source.refresh()
