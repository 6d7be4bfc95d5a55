import logging
from typing import List, Optional

from evdash.constants import ButtonAction, ButtonColor, ButtonType, RowIdType
from evdash.descriptors import ActionContext, ActionKind
from evdash.errors import ValidationFailure
from evdash_qt.actions.base import TableAction
from evdash_qt.context_use import TextPair

logger = logging.getLogger(__name__)


class RemoveAction(TableAction):
    """Deletes the selected rows after an explicit confirmation.

    Nothing is sent when the selection is empty; a validation message is
    shown instead. The selection is cleared only after the backend confirms
    the removal.

    Attributes:
        confirm_title: Translation key and default text of the title of the
            confirmation.
        confirm_message: Translation key and default text of the question.
    """

    id = ButtonAction.REMOVE
    kind = ActionKind.REMOVE
    name = "general.remove"
    icon = "remove"
    color = ButtonColor.WARN
    confirm_title: TextPair = ("general.delete_title", "Delete")
    confirm_message: TextPair = (
        "general.delete_confirm",
        "Do you really want to delete the selected records?",
    )

    def __init__(
        self,
        confirm_title: Optional[TextPair] = None,
        confirm_message: Optional[TextPair] = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        if confirm_title is not None:
            self.confirm_title = confirm_title
        if confirm_message is not None:
            self.confirm_message = confirm_message

    def trigger(self, actx: ActionContext) -> None:
        source = self.source_of(actx)
        if not actx.selection:
            source.handle_failure(
                ValidationFailure(
                    "No record selected",
                    key="general.select_at_least_one_record",
                ),
                default="Please select at least one record",
            )
            return

        ids = source.order_ids(actx.selection)

        def on_answer(answer: ButtonType) -> None:
            if answer != ButtonType.YES:
                logger.debug("%s: not confirmed", self)
                return
            self.perform(actx, ids)

        source.dialogs().ask_yes_no(
            source.t_pair(self.confirm_title),
            source.t_pair(self.confirm_message),
            on_answer,
        )

    def perform(self, actx: ActionContext, ids: List[RowIdType]) -> None:
        source = self.source_of(actx)
        source.remove_rows(ids, on_success=lambda _: source.clear_selection())
