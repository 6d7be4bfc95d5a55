import logging
from typing import TYPE_CHECKING, Any, Callable, Mapping, Optional, Union

from evdash.constants import ButtonColor, ButtonType, DialogMode
from evdash.descriptors import ActionContext, ActionDescriptor, ActionKind
from evdash_qt.dialogs import DEFAULT_SIZE, DialogParams, SizeProfile

if TYPE_CHECKING:
    from evdash_qt.data_source import TableDataSource  # noqa: F401

logger = logging.getLogger(__name__)

Predicate = Callable[[ActionContext], bool]
StaticFilter = Union[
    Mapping[str, Any], Callable[[ActionContext], Mapping[str, Any]]
]


def is_cancelled(result: Any) -> bool:
    """Tell if a dialog result means the user backed out."""
    return result is None or result is False or result == ButtonType.CANCEL


class TableAction:
    """Base class for the actions of a table.

    An action does not keep a reference to its data source; everything it
    needs arrives with the `ActionContext` it is triggered with. The same
    instance can therefore be shared by several tables.

    Attributes:
        id: The identifier of the action in the catalogue.
        kind: The variant of the action.
        name: Translation key of the label.
        icon: Name of the icon.
        tooltip: Translation key of the tooltip.
        color: Button color hint.
        visible_if: Optional predicate telling whether the action is shown.
        enabled_if: Optional predicate telling whether the action can be
            triggered.
    """

    id: str
    kind: ActionKind = ActionKind.CUSTOM
    name: str = ""
    icon: str = ""
    tooltip: str = ""
    color: ButtonColor = ButtonColor.BASIC
    visible_if: Optional[Predicate]
    enabled_if: Optional[Predicate]

    def __init__(
        self,
        id: Optional[str] = None,
        name: Optional[str] = None,
        icon: Optional[str] = None,
        tooltip: Optional[str] = None,
        color: Optional[ButtonColor] = None,
        visible_if: Optional[Predicate] = None,
        enabled_if: Optional[Predicate] = None,
    ):
        if id is not None:
            self.id = id
        if name is not None:
            self.name = name
        if icon is not None:
            self.icon = icon
        if tooltip is not None:
            self.tooltip = tooltip
        if color is not None:
            self.color = color
        if not getattr(self, "id", None):
            raise ValueError(f"{self.__class__.__name__} needs an id")
        self.visible_if = visible_if
        self.enabled_if = enabled_if

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.id!r})"

    def is_visible(self, actx: ActionContext) -> bool:
        if self.visible_if is None:
            return True
        return bool(self.visible_if(actx))

    def is_enabled(self, actx: ActionContext) -> bool:
        if self.enabled_if is None:
            return True
        return bool(self.enabled_if(actx))

    def get_descriptor(self) -> ActionDescriptor:
        return ActionDescriptor(
            id=self.id,
            kind=self.kind,
            name=self.name,
            icon=self.icon,
            tooltip=self.tooltip or self.name,
            color=self.color,
            visible_if=self.is_visible,
            enabled_if=self.is_enabled,
            handler=self.trigger,
        )

    def trigger(self, actx: ActionContext) -> None:
        raise NotImplementedError

    @staticmethod
    def source_of(actx: ActionContext) -> "TableDataSource":
        return actx.source


class DialogAction(TableAction):
    """An action that opens a dialog and acts on its result.

    Attributes:
        component: The dialog component handed to the dialog mediator.
        size: The size of the dialog.
        dialog_mode: The mode the dialog is opened in.
        static_filter: Restrictions for the dialog; either a mapping or a
            callable that receives the action context.
    """

    component: Any
    size: SizeProfile
    dialog_mode: DialogMode = DialogMode.VIEW
    static_filter: Optional[StaticFilter]

    def __init__(
        self,
        component: Any,
        size: SizeProfile = DEFAULT_SIZE,
        static_filter: Optional[StaticFilter] = None,
        **kwargs: Any,
    ):
        super().__init__(**kwargs)
        self.component = component
        self.size = size
        self.static_filter = static_filter

    def get_static_filter(self, actx: ActionContext) -> Mapping[str, Any]:
        if self.static_filter is None:
            return {}
        if callable(self.static_filter):
            return self.static_filter(actx)
        return self.static_filter

    def make_params(self, actx: ActionContext) -> Optional[DialogParams]:
        """The payload of the dialog; None to not open it at all."""
        return DialogParams(
            dialog_data=None,
            dialog_mode=self.dialog_mode,
            static_filter=self.get_static_filter(actx),
        )

    def get_component(self, source: "TableDataSource") -> Any:
        """The dialog to open.

        An application can replace it, without touching the table, with
        the `dialog.<table id>.<action id>` override of the context.
        """
        return source.ctx.get_ovr(
            f"dialog.{source.table_id}.{self.id}", self.component
        )

    def trigger(self, actx: ActionContext) -> None:
        params = self.make_params(actx)
        if params is None:
            return
        source = self.source_of(actx)
        component = self.get_component(source)
        logger.debug(
            "%s: opening %s in mode %s",
            self,
            component,
            params.dialog_mode,
        )
        source.dialogs().open(
            component,
            params,
            self.size,
            lambda result: self.on_closed(actx, params, result),
        )

    def on_closed(
        self, actx: ActionContext, params: DialogParams, result: Any
    ) -> None:
        if is_cancelled(result):
            logger.debug("%s: dialog cancelled", self)
            return
        if result is True:
            # Accepted by a dialog that has no `result_value()`.
            logger.warning("%s: dialog accepted without a value", self)
            return
        self.apply_result(actx, params, result)

    def apply_result(
        self, actx: ActionContext, params: DialogParams, result: Any
    ) -> None:
        """Act on the result of a dialog that was not cancelled."""
        raise NotImplementedError
