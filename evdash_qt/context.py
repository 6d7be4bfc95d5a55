import logging
import logging.config
import os
from typing import TYPE_CHECKING, Any, Callable, Dict, Optional, cast

from attrs import define, field
from PyQt5.QtWidgets import QMessageBox
from pyrsistent import thaw

from evdash.constants import DEFAULT_PAGE_SIZE
from evdash.errors import FailureStatus, TableError, as_failure
from evdash_qt.busy import BusyIndicator
from evdash_qt.local_settings import LocalSettings
from evdash_qt.plugins import evdash_qt_pm
from evdash_qt.utils.plugins import safe_hook_call
from evdash_qt.worker import Work, WorkRelay

if TYPE_CHECKING:
    from PyQt5.QtWidgets import QWidget  # noqa: F401

    from evdash_qt.dialogs import DialogMediator  # noqa: F401
    from evdash_qt.ports import Exporter  # noqa: F401

PAGE_SIZE_ENV = "EVDASH_PAGE_SIZE"
STATUS_MESSAGE_TIMEOUT = 5000

LOG_FILE = "evdash.log"
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def logging_config(log_file: str) -> Dict[str, Any]:
    """The logging configuration used when the settings have none.

    The console only gets warnings; the rotating file next to the settings
    gets everything our packages log.
    """
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "evdash": {"format": LOG_FORMAT},
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "evdash",
                "level": "WARNING",
            },
            "file": {
                "class": "logging.handlers.RotatingFileHandler",
                "formatter": "evdash",
                "filename": log_file,
                "maxBytes": 5 * 1024 * 1024,
                "backupCount": 3,
                "encoding": "utf-8",
            },
        },
        "loggers": {
            "evdash": {"level": "DEBUG"},
            "evdash_qt": {"level": "DEBUG"},
        },
        "root": {"handlers": ["console", "file"], "level": "INFO"},
    }


logger = logging.getLogger(__name__)


@define
class QtContext:
    """Provides a context for the tables of the application.

    One context is shared by all the data sources of the application; it
    holds the collaborators they have in common.

    Attributes:
        top_widget: The main widget of the application. This will be the
            default parent for dialogs and message boxes.
        work_relay: The relay for the provider thread. Provides the ability for
            data providers to run blocking calls without freezing the UI.
        busy: The busy indicator shared by all data sources.
        dialogs: Opens dialogs on behalf of the actions.
        exporter: Receives the snapshots of export actions.
        stg: The local read-write settings.
        translations: Translated strings by key. Missing keys fall back to
            the default text given to `t()`.
        data: A dictionary of general-purpose data.
        auto_logging: Configure logging from the settings when the context
            is created.
    """

    top_widget: Optional["QWidget"] = None
    work_relay: Optional[WorkRelay] = None
    busy: BusyIndicator = field(factory=BusyIndicator)
    dialogs: Optional["DialogMediator"] = None
    exporter: Optional["Exporter"] = None
    stg: LocalSettings = field(factory=LocalSettings)
    translations: Dict[str, str] = field(factory=dict)
    data: Dict[str, Any] = field(factory=dict)
    auto_logging: bool = True
    _overrides: Dict[str, Any] = field(factory=dict)

    def __attrs_post_init__(self):
        if self.auto_logging:
            self.setup_logging()

        safe_hook_call(evdash_qt_pm.hook.context_created, context=self)

    def push_work(
        self,
        fn: Callable[[], Any],
        callback: Callable[["Work"], None],
        req_id: Optional[Any] = None,
        name: str = "",
    ) -> "Work":
        """Run a blocking callable in the provider thread.

        The relay is created on first use.
        """
        if self.work_relay is None:
            self.work_relay = WorkRelay(parent=cast(Any, self.top_widget))
        return self.work_relay.push_work(
            fn=fn,
            callback=callback,
            req_id=req_id,
            name=name,
        )

    def t(self, key: str, d: str, **kwargs: Any) -> str:
        """The text of `key`, or `d` when there is no translation.

        Placeholders are filled with `str.format`; a text that cannot be
        formatted with `kwargs` is returned as is.
        """
        text = self.translations.get(key, d)
        try:
            return text.format(**kwargs)
        except (KeyError, IndexError, ValueError):
            logger.warning("Bad arguments %s for translation %s", kwargs, key)
            return text

    def show_error(self, message: str, title: str = "Error"):
        """Show a modal error box over the top widget.

        Without a top widget the message is only logged.
        """
        logger.info("Error shown to the user: %s", message)
        if self.top_widget is None:
            return
        QMessageBox.critical(self.top_widget, title, message)

    def show_message(self, message: str):
        """Shows a short, non-blocking confirmation.

        The message goes to the status bar of the top widget when it has
        one; otherwise it is only logged.
        """
        logger.info("Message shown to the user: %s", message)
        status_bar = getattr(self.top_widget, "statusBar", None)
        if status_bar is not None:
            status_bar().showMessage(message, STATUS_MESSAGE_TIMEOUT)

    def handle_failure(
        self,
        error: BaseException,
        key: Optional[str] = None,
        default: Optional[str] = None,
        **kwargs: Any,
    ) -> TableError:
        """Report a failure to the plugins and to the user.

        Except for validation failures, plugins implementing the
        `transport_failure` hook are called first, so that session
        handling (forced logout on expired authentication, for example)
        happens before the message is shown.

        Args:
            error: The failure or any exception.
            key: The translation key of the message; defaults to the key of
                the failure.
            default: The default text of the message; defaults to the
                message of the failure.
            **kwargs: Arguments for the translated message.

        Returns:
            The failure, converted to a `TableError` if needed.
        """
        failure = as_failure(error)
        if failure.status == FailureStatus.VALIDATION:
            logger.warning("Validation failure: %s", failure.message)
        else:
            logger.error(
                "%s failure: %s",
                failure.status,
                failure.message,
                exc_info=error,
            )
            safe_hook_call(
                evdash_qt_pm.hook.transport_failure,
                context=self,
                failure=failure,
            )
        self.show_error(
            self.t(
                key or failure.key,
                default or failure.message,
                **kwargs,
            ),
            title=self.t("general.error_title", "Error"),
        )
        return failure

    def default_page_size(self, table_id: Optional[str] = None) -> int:
        """The page size a new table starts with.

        The `EVDASH_PAGE_SIZE` environment variable wins, then the setting
        of the table (`evdash.tables.<table_id>.page_size`), then the
        general setting (`evdash.tables.page_size`).
        """
        env_value = os.environ.get(PAGE_SIZE_ENV)
        if env_value:
            try:
                result = int(env_value)
                if result > 0:
                    return result
            except ValueError:
                pass
            logger.warning("Ignoring invalid %s=%s", PAGE_SIZE_ENV, env_value)

        value = self.stg.table_setting(table_id, "page_size")
        if value is None:
            return DEFAULT_PAGE_SIZE
        if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
            logger.warning("Ignoring invalid page size setting %r", value)
            return DEFAULT_PAGE_SIZE
        return value

    def setup_logging(self):
        """Configure logging from the `logging` setting.

        The first run stores the default configuration, pointing the log
        file to the settings directory, so that users can edit it.
        """
        config = self.stg.get_setting("logging")
        if config is None:
            config = logging_config(
                os.path.join(self.stg.settings_dir(), LOG_FILE)
            )
            self.stg.set_setting("logging", config)
        logging.config.dictConfig(thaw(config))
        logger.debug("Logging configured")

    def get_ovr(
        self,
        key: str,
        default: Any = None,
        exception_if_missing: bool = False,
    ) -> Any:
        """A value that replaces one of the built-in collaborators.

        Applications use overrides to swap, for example, the dialog class
        of an action without subclassing it.

        Raises:
            ValueError: `exception_if_missing` is set and there is no such
                override.
        """
        if key in self._overrides:
            return self._overrides[key]
        if exception_if_missing:
            raise ValueError(f"No override for {key}")
        return default

    def set_ovr(self, key: str, value: Any, exception_if_exists: bool = False):
        if exception_if_exists and key in self._overrides:
            raise ValueError(f"Override {key} is already set")
        logger.debug("Override %s set", key)
        self._overrides[key] = value
