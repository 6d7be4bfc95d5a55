from typing import TYPE_CHECKING, Any, Optional, Tuple

if TYPE_CHECKING:
    from evdash.errors import TableError
    from evdash_qt.context import QtContext

# A translation key and the text to use when there is no translation.
TextPair = Tuple[str, str]


class QtUseContext:
    """Shortcuts for objects that hold a context in `ctx`.

    Data sources, actions and dialog mediators all report to the user
    through the same context; these methods keep that one call away.
    """

    ctx: "QtContext"

    def t(self, key: str, d: str, **kwargs: Any) -> str:
        """Translate `key`, falling back to `d`.

        Args:
            key: The translation key.
            d: The default text.
            **kwargs: Values for the placeholders of the text.
        """
        return self.ctx.t(key, d, **kwargs)

    def t_pair(self, pair: TextPair, **kwargs: Any) -> str:
        """Translate a `(key, default)` pair."""
        key, d = pair
        return self.ctx.t(key, d, **kwargs)

    def show_error(self, message: str, title: str = "Error"):
        self.ctx.show_error(message, title)

    def show_message(self, message: str):
        """Shows a short confirmation message."""
        self.ctx.show_message(message)

    def handle_failure(
        self,
        error: BaseException,
        key: Optional[str] = None,
        default: Optional[str] = None,
        **kwargs: Any,
    ) -> "TableError":
        """Report a failure to the plugins and to the user.

        See `QtContext.handle_failure`.
        """
        return self.ctx.handle_failure(error, key, default, **kwargs)

    def get_stg(self, key: str, default: Any = None) -> Any:
        """A local setting; `default` also replaces stored nulls."""
        value = self.ctx.stg.get_setting(key)
        return default if value is None else value
