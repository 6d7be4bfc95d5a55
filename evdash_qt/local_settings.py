"""Settings stored in the user's configuration directory.

Everything lives in a single YAML file, read once at start-up and written
back a few seconds after the last change. Table preferences are kept under
`evdash.tables`, one map per table id:

    evdash:
      tables:
        page_size: 50
        site_users:
          page_size: 20
"""

import logging
import os
import threading
from typing import Any, Mapping, Optional

import yaml
from appdirs import user_config_dir
from attrs import define, field
from pyrsistent import freeze, pmap, thaw
from pyrsistent.typing import PMap

APP_NAME = "evdash"
SETTINGS_FILE = "settings.yaml"
TABLES_KEY = "evdash.tables"

# Seconds to wait after the last change before writing the file.
DEBOUNCE_TIME = 5

_MISSING = object()

logger = logging.getLogger(__name__)


def table_key(table_id: Optional[str], name: str) -> str:
    """The key of a table preference; without an id, the general one."""
    if table_id:
        return f"{TABLES_KEY}.{table_id}.{name}"
    return f"{TABLES_KEY}.{name}"


def _assoc(container: Any, parts: list, value: Any) -> PMap[str, Any]:
    """Return a copy of `container` with `value` stored at `parts`.

    Containers that are missing, or that hold a plain value, are replaced
    by maps.
    """
    if not isinstance(container, Mapping):
        container = pmap()
    head = parts[0]
    if len(parts) == 1:
        return container.set(head, value)
    return container.set(head, _assoc(container.get(head), parts[1:], value))


@define
class LocalSettings:
    """Read-write settings of the current user.

    Values are frozen (`pyrsistent`) when stored, so what `get_setting`
    returns can be shared freely. Keys are dot-separated paths.

    Attributes:
        settings: The current settings.
        app_name: The name of the directory inside the user configuration
            directory.
    """

    settings: PMap[str, Any] = field(factory=pmap)
    app_name: str = field(default=APP_NAME)
    _save_timer: Optional[threading.Timer] = field(default=None, init=False)
    _save_lock: Optional[threading.Lock] = field(
        factory=threading.Lock, init=False
    )

    def __attrs_post_init__(self):
        self.load_settings()

    def __getitem__(self, key: str) -> Any:
        return self.get_setting(key)

    def __setitem__(self, key: str, value: Any):
        self.set_setting(key, value)

    @property
    def read_only(self) -> bool:
        return self._save_lock is None

    def set_read_only(self, read_only: bool):
        """In read-only mode changes are kept in memory only."""
        if read_only:
            if self._save_timer is not None:
                self._save_timer.cancel()
                self._save_timer = None
            self._save_lock = None
        elif self._save_lock is None:
            self._save_lock = threading.Lock()

    def get_setting(self, key: str, default: Any = None) -> Any:
        """Get the value at a dot-separated path.

        Args:
            key: The path of the setting.
            default: Returned when the path does not exist or goes through
                a plain value.
        """
        current: Any = self.settings
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return default
            current = current[part]
        return current

    def set_setting(self, key: str, value: Any):
        """Store a value at a dot-separated path and schedule a save.

        Nothing happens if the value does not change.
        """
        value = freeze(value)
        if self.get_setting(key, _MISSING) == value:
            return
        self.settings = _assoc(self.settings, key.split("."), value)
        logger.debug("Setting %s changed", key)
        self.save_settings()

    def table_setting(
        self, table_id: Optional[str], name: str, default: Any = None
    ) -> Any:
        """A preference of a table, falling back to the general one."""
        result = self.get_setting(table_key(table_id, name))
        if result is None and table_id:
            result = self.get_setting(table_key(None, name))
        return default if result is None else result

    def set_table_setting(self, table_id: Optional[str], name: str, value: Any):
        self.set_setting(table_key(table_id, name), value)

    def save_settings(self):
        """Write the settings a few seconds from now.

        Each call restarts the delay, so a burst of changes produces a
        single write.
        """
        if self._save_lock is None:
            return
        with self._save_lock:
            if self._save_timer is not None:
                self._save_timer.cancel()
            self._save_timer = threading.Timer(
                DEBOUNCE_TIME, self._save_from_timer
            )
            self._save_timer.daemon = True
            self._save_timer.start()

    def _save_from_timer(self):
        if self._save_lock is None:
            return
        try:
            with self._save_lock:
                self._save_timer = None
                self.save_now()
        except OSError as e:
            logger.error("Error saving settings: %s", e, exc_info=True)

    def save_now(self):
        """Write the file right away, through a temporary file."""
        settings_file = self.settings_file()
        tmp_settings = f"{settings_file}.tmp"
        with open(tmp_settings, "w") as f:
            yaml.safe_dump(thaw(self.settings), f)
        os.replace(tmp_settings, settings_file)
        logger.debug("Settings saved to %s", settings_file)

    def load_settings(self):
        """Read the file, if there is one.

        A file that cannot be parsed is left alone and the settings start
        empty, so that a typo does not prevent the application from
        starting.
        """
        settings_file = self.settings_file()
        if not os.path.exists(settings_file):
            logger.debug("Settings file %s does not exist", settings_file)
            return

        with open(settings_file, "r") as f:
            try:
                loaded = yaml.safe_load(f)
            except yaml.YAMLError as e:
                logger.error(
                    "Settings file %s is not valid YAML: %s", settings_file, e
                )
                return

        if loaded is None:
            logger.warning("Settings file %s is empty", settings_file)
        elif not isinstance(loaded, dict):
            logger.error(
                "Settings file %s does not hold a mapping", settings_file
            )
        else:
            self.settings = freeze(loaded)
            logger.debug("Settings loaded from %s", settings_file)

    def settings_file(self) -> str:
        return os.path.join(self.settings_dir(), SETTINGS_FILE)

    def settings_dir(self) -> str:
        """The configuration directory; created if missing."""
        config_dir = user_config_dir(self.app_name)
        os.makedirs(config_dir, exist_ok=True)
        return config_dir

