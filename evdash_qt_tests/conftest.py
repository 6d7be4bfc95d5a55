import os
from unittest.mock import MagicMock

import pytest
from PyQt5.QtWidgets import QApplication

from evdash_qt.context import PAGE_SIZE_ENV, QtContext
from evdash_qt.local_settings import LocalSettings

from evdash_qt_tests.fakes import FakeDialogs, FakeProvider, PeopleSource

# Ensure headless Qt on CI/CLI runs.
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")


@pytest.fixture(scope="session")
def qt_app():
    """Ensure a single QApplication exists for Qt-based tests."""
    app = QApplication.instance()
    if app is None:
        app = QApplication([])
    yield app


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def dialogs() -> FakeDialogs:
    return FakeDialogs()


@pytest.fixture
def shown_errors(monkeypatch) -> MagicMock:
    """Replaces the error box with a mock."""
    mock = MagicMock()
    monkeypatch.setattr(QtContext, "show_error", mock)
    return mock


@pytest.fixture
def shown_messages(monkeypatch) -> MagicMock:
    """Replaces the status bar messages with a mock."""
    mock = MagicMock()
    monkeypatch.setattr(QtContext, "show_message", mock)
    return mock


@pytest.fixture
def context(qt_app, dialogs, monkeypatch) -> QtContext:
    """A context that touches neither the disk nor the logging setup."""
    monkeypatch.delenv(PAGE_SIZE_ENV, raising=False)
    stg = MagicMock(spec=LocalSettings)
    stg.get_setting.return_value = None
    # Table preferences go through the mocked get/set_setting.
    stg.table_setting.side_effect = (
        lambda *args, **kwargs: LocalSettings.table_setting(
            stg, *args, **kwargs
        )
    )
    stg.set_table_setting.side_effect = (
        lambda *args, **kwargs: LocalSettings.set_table_setting(
            stg, *args, **kwargs
        )
    )
    return QtContext(
        stg=stg,
        dialogs=dialogs,
        exporter=MagicMock(),
        auto_logging=False,
    )


@pytest.fixture
def source(context, provider, shown_errors, shown_messages):
    result = PeopleSource(context, provider)
    yield result
    result.close()
