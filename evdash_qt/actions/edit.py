import logging
from typing import Any, Optional

from evdash.constants import ButtonAction, DialogMode
from evdash.descriptors import ActionContext, ActionKind
from evdash.errors import ValidationFailure
from evdash.utils import get_flag
from evdash_qt.actions.base import DialogAction
from evdash_qt.dialogs import DialogParams

logger = logging.getLogger(__name__)


class EditAction(DialogAction):
    """Opens the form of a row.

    The row is the one the action was triggered on or, for toolbar use, the
    only selected row. Rows whose `can_update` flag is not set are opened in
    view mode and whatever the dialog returns is ignored.

    Attributes:
        update_flag: The flag of the row that allows editing.
    """

    id = ButtonAction.EDIT
    kind = ActionKind.EDIT
    name = "general.edit"
    icon = "edit"
    dialog_mode = DialogMode.EDIT
    update_flag: str = "can_update"

    def target_row(self, actx: ActionContext) -> Any:
        if actx.row is not None:
            return actx.row
        if len(actx.selection) == 1:
            (row_id,) = actx.selection
            return self.source_of(actx).row_by_id(row_id)
        return None

    def make_params(self, actx: ActionContext) -> Optional[DialogParams]:
        row = self.target_row(actx)
        if row is None:
            self.source_of(actx).handle_failure(
                ValidationFailure(
                    "Select exactly one record",
                    key="general.select_one_record",
                )
            )
            return None

        mode = (
            DialogMode.EDIT
            if get_flag(row, self.update_flag)
            else DialogMode.VIEW
        )
        return DialogParams(
            dialog_data=row,
            dialog_mode=mode,
            static_filter=self.get_static_filter(actx),
        )

    def apply_result(
        self, actx: ActionContext, params: DialogParams, result: Any
    ) -> None:
        if params.dialog_mode == DialogMode.VIEW:
            logger.debug("%s: view mode, result ignored", self)
            return
        self.source_of(actx).update_row(result)
