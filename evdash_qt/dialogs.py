"""Dialog mediation.

Actions never create widgets themselves. They ask a `DialogMediator` to
open a component with some parameters and give it a callback; the callback
is called when the user closes the dialog, with the result or with `None`
if the dialog was cancelled. It may also never be called at all (the user
can leave a dialog open for as long as the application runs), so nothing
may wait on it.
"""

import logging
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Mapping,
    Optional,
    Protocol,
)

from attrs import field, frozen
from pyrsistent import pmap
from pyrsistent.typing import PMap
from PyQt5.QtWidgets import QDialog, QMessageBox

from evdash.constants import ButtonType, DialogMode, ScreenSize
from evdash_qt.context_use import QtUseContext

if TYPE_CHECKING:
    from PyQt5.QtWidgets import QWidget  # noqa: F401

    from evdash_qt.context import QtContext  # noqa: F401

logger = logging.getLogger(__name__)

DialogCallback = Callable[[Any], None]
DialogComponent = Callable[["QtContext", "DialogParams", Optional["QWidget"]], Any]


def _to_pmap(value: Optional[Mapping[str, Any]]) -> PMap[str, Any]:
    return pmap(value or {})


@frozen
class DialogParams:
    """The payload given to a dialog component.

    Attributes:
        dialog_data: The entity the dialog works on; None for creation.
        dialog_mode: View, edit or create.
        static_filter: Restrictions for dialogs that list entities (the
            users that can be assigned to a site, for example).
        title: Optional title for the dialog.
    """

    dialog_data: Any = None
    dialog_mode: DialogMode = DialogMode.VIEW
    static_filter: PMap[str, Any] = field(factory=pmap, converter=_to_pmap)
    title: str = ""


@frozen
class SizeProfile:
    """The size of a dialog, as percentages of the top widget."""

    min_width: ScreenSize = ScreenSize.M
    max_width: ScreenSize = ScreenSize.M
    width: ScreenSize = ScreenSize.M
    min_height: ScreenSize = ScreenSize.M
    max_height: ScreenSize = ScreenSize.M
    height: ScreenSize = ScreenSize.M

    @classmethod
    def uniform(
        cls, width: ScreenSize, height: Optional[ScreenSize] = None
    ) -> "SizeProfile":
        """All widths equal to `width` and all heights equal to `height`."""
        height = height or width
        return cls(
            min_width=width,
            max_width=width,
            width=width,
            min_height=height,
            max_height=height,
            height=height,
        )

    def pixels(self, total_width: int, total_height: int) -> dict:
        """Resolve the percentages against an available area."""

        def px(total: int, pct: ScreenSize) -> int:
            return int(total * int(pct) / 100)

        return {
            "min_width": px(total_width, self.min_width),
            "max_width": px(total_width, self.max_width),
            "width": px(total_width, self.width),
            "min_height": px(total_height, self.min_height),
            "max_height": px(total_height, self.max_height),
            "height": px(total_height, self.height),
        }


DEFAULT_SIZE = SizeProfile()


class DialogMediator(Protocol):
    """Opens dialogs and reports their outcome asynchronously."""

    def open(
        self,
        component: Any,
        params: DialogParams,
        size: SizeProfile,
        callback: DialogCallback,
    ) -> None: ...

    def ask_yes_no(
        self,
        title: str,
        message: str,
        callback: Callable[[ButtonType], None],
    ) -> None: ...


class QtDialogMediator(QtUseContext):
    """Dialog mediation on top of Qt.

    Components are factories called as `component(ctx, params, parent)`
    that return a `QDialog`. When the dialog is accepted the callback
    receives `dialog.result_value()` (or True if the dialog has no such
    method); when it is rejected the callback receives None.

    Dialogs are shown with `QDialog.open()`, which does not block.

    Attributes:
        ctx: The context.
        dialogs: The dialogs that are currently open.
    """

    dialogs: list

    def __init__(self, ctx: "QtContext") -> None:
        self.ctx = ctx
        self.dialogs = []

    def open(
        self,
        component: Any,
        params: DialogParams,
        size: SizeProfile,
        callback: DialogCallback,
    ) -> None:
        dialog = component(self.ctx, params, self.ctx.top_widget)
        self.apply_size(dialog, size)
        self.dialogs.append(dialog)

        def on_finished(code: int) -> None:
            if dialog in self.dialogs:
                self.dialogs.remove(dialog)
            if code == QDialog.Accepted:
                getter = getattr(dialog, "result_value", None)
                result = getter() if getter is not None else True
            else:
                result = None
            logger.debug("Dialog %s closed with %r", component, result)
            callback(result)

        dialog.finished.connect(on_finished)
        dialog.open()

    def ask_yes_no(
        self,
        title: str,
        message: str,
        callback: Callable[[ButtonType], None],
    ) -> None:
        box = QMessageBox(self.ctx.top_widget)
        box.setIcon(QMessageBox.Question)
        box.setWindowTitle(title)
        box.setText(message)
        box.setStandardButtons(QMessageBox.Yes | QMessageBox.No)
        box.setDefaultButton(QMessageBox.No)
        self.dialogs.append(box)

        def on_finished(code: int) -> None:
            if box in self.dialogs:
                self.dialogs.remove(box)
            callback(ButtonType.YES if code == QMessageBox.Yes else ButtonType.NO)

        box.finished.connect(on_finished)
        box.open()

    def apply_size(self, dialog: Any, size: SizeProfile) -> None:
        """Size the dialog relative to the top widget, if there is one."""
        top = self.ctx.top_widget
        if top is None:
            return
        px = size.pixels(top.width(), top.height())
        dialog.setMinimumSize(px["min_width"], px["min_height"])
        dialog.setMaximumSize(px["max_width"], px["max_height"])
        dialog.resize(px["width"], px["height"])
