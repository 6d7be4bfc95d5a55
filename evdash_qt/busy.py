import logging
from typing import Any, Dict, Optional

from PyQt5.QtCore import QObject, pyqtSignal

logger = logging.getLogger(__name__)


class BusyIndicator(QObject):
    """A busy state shared by everything that loads data.

    Several data sources can be visible at the same time (a table inside a
    dialog opened from another table); each of them acquires the indicator
    when it becomes busy and releases it when it becomes idle. The
    indicator is busy while at least one owner holds it.

    An owner can hold the indicator only once; repeated acquisitions by the
    same owner are ignored, and so are releases by owners that do not
    hold it.

    Signals:
        busyChanged: Emitted with the new state when the indicator switches
            between idle and busy.
        countChanged: Emitted with the number of owners each time it
            changes.
    """

    _owners: Dict[int, str]

    busyChanged = pyqtSignal(bool)
    countChanged = pyqtSignal(int)

    def __init__(self, parent: Optional[QObject] = None):
        super().__init__(parent)
        self._owners = {}

    @property
    def is_busy(self) -> bool:
        return len(self._owners) > 0

    @property
    def count(self) -> int:
        return len(self._owners)

    def holds(self, owner: Any) -> bool:
        return id(owner) in self._owners

    def acquire(self, owner: Any) -> None:
        key = id(owner)
        if key in self._owners:
            return
        was_busy = self.is_busy
        self._owners[key] = repr(owner)
        self.countChanged.emit(len(self._owners))
        if not was_busy:
            logger.debug("Busy indicator on (%s)", self._owners[key])
            self.busyChanged.emit(True)

    def release(self, owner: Any) -> None:
        key = id(owner)
        if self._owners.pop(key, None) is None:
            return
        self.countChanged.emit(len(self._owners))
        if not self._owners:
            logger.debug("Busy indicator off")
            self.busyChanged.emit(False)
