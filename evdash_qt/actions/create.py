from typing import Any

from evdash.constants import ButtonAction, ButtonColor, DialogMode
from evdash.descriptors import ActionContext, ActionKind
from evdash_qt.actions.base import DialogAction
from evdash_qt.dialogs import DialogParams


class CreateAction(DialogAction):
    """Opens an empty form; the result is created through the provider."""

    id = ButtonAction.CREATE
    kind = ActionKind.CREATE
    name = "general.create"
    icon = "add"
    color = ButtonColor.PRIMARY
    dialog_mode = DialogMode.CREATE

    def apply_result(
        self, actx: ActionContext, params: DialogParams, result: Any
    ) -> None:
        self.source_of(actx).create_row(result)
