import logging
from typing import Any, List, Optional

from evdash.constants import ButtonAction, ButtonColor, RowIdType
from evdash.descriptors import ActionContext, ActionKind
from evdash.utils import get_row_id
from evdash_qt.actions.base import DialogAction
from evdash_qt.actions.remove import RemoveAction
from evdash_qt.dialogs import DialogParams

logger = logging.getLogger(__name__)


class AssignAction(DialogAction):
    """Opens a chooser and assigns the chosen rows to the parent entity.

    Attributes:
        id_field: The path of the identity in the rows the chooser returns.
    """

    id = ButtonAction.ADD
    kind = ActionKind.ASSIGN
    name = "general.add"
    icon = "add"
    color = ButtonColor.PRIMARY
    id_field: str = "id"

    def __init__(
        self, component: Any, id_field: Optional[str] = None, **kwargs: Any
    ):
        super().__init__(component, **kwargs)
        if id_field is not None:
            self.id_field = id_field

    def result_ids(self, result: Any) -> List[RowIdType]:
        if not isinstance(result, (list, tuple, set, frozenset)):
            result = [result]
        ids = []
        for item in result:
            if isinstance(item, bool):
                logger.warning("%s: ignoring the result %r", self, item)
            elif isinstance(item, (str, int, tuple)):
                ids.append(item)
            else:
                ids.append(get_row_id(item, self.id_field))
        return ids

    def apply_result(
        self, actx: ActionContext, params: DialogParams, result: Any
    ) -> None:
        ids = self.result_ids(result)
        if not ids:
            logger.debug("%s: nothing chosen", self)
            return
        source = self.source_of(actx)
        source.assign_rows(ids, on_success=lambda _: source.clear_selection())


class UnassignAction(RemoveAction):
    """Removes the selected rows from the parent entity after confirmation."""

    id = ButtonAction.UNASSIGN
    kind = ActionKind.UNASSIGN
    name = "general.unassign"
    icon = "link_off"
    confirm_title = ("general.unassign_title", "Unassign")
    confirm_message = (
        "general.unassign_confirm",
        "Do you really want to unassign the selected records?",
    )

    def perform(self, actx: ActionContext, ids: List[RowIdType]) -> None:
        source = self.source_of(actx)
        source.unassign_rows(
            ids, on_success=lambda _: source.clear_selection()
        )
