import logging
from typing import Optional

from evdash.constants import ButtonAction, ButtonType
from evdash.descriptors import ActionContext, ActionKind
from evdash_qt.actions.base import TableAction
from evdash_qt.context_use import TextPair

logger = logging.getLogger(__name__)


class ExportAction(TableAction):
    """Hands a snapshot of the table to the exporter of the context.

    The data source is not changed in any way.

    Attributes:
        confirm_title: If set, the export starts only after the user
            answers yes to `confirm_message`.
        confirm_message: The question asked before exporting.
    """

    id = ButtonAction.EXPORT
    kind = ActionKind.EXPORT
    name = "general.export"
    icon = "cloud_download"
    confirm_title: Optional[TextPair] = None
    confirm_message: TextPair = (
        "general.export_confirm",
        "Do you really want to export the records?",
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
        if self.confirm_title is None:
            self.export(actx)
            return

        def on_answer(answer: ButtonType) -> None:
            if answer == ButtonType.YES:
                self.export(actx)

        source.dialogs().ask_yes_no(
            source.t_pair(self.confirm_title),
            source.t_pair(self.confirm_message),
            on_answer,
        )

    def export(self, actx: ActionContext) -> None:
        source = self.source_of(actx)
        exporter = source.ctx.exporter
        if exporter is None:
            raise RuntimeError("The context has no exporter")
        request = source.export_snapshot()
        logger.debug("%s: exporting %s", self, request.query.as_dict())
        exporter.export(request)
