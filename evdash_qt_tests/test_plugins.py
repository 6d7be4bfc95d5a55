from unittest.mock import MagicMock

import pytest

from evdash_qt.plugins import evdash_qt_pm, hook_impl
from evdash_qt.utils.plugins import func_plugin, safe_hook_call


def test_func_plugin_without_arguments():
    calls = []

    @func_plugin
    def data_source_created(data_source):
        calls.append(data_source)

    try:
        assert evdash_qt_pm.has_plugin(data_source_created.plugin_name)
        results, errors = safe_hook_call(
            evdash_qt_pm.hook.data_source_created, data_source="ds"
        )
    finally:
        data_source_created.unregister()

    assert calls == ["ds"]
    assert errors == {}
    assert list(results.values()) == [None]
    assert not evdash_qt_pm.has_plugin(data_source_created.plugin_name)


def test_func_plugin_with_arguments():
    @func_plugin(plugin_name="evdash-test-logout", specname="transport_failure")
    def logout(context, failure):
        return failure.is_auth_expired

    try:
        failure = MagicMock(is_auth_expired=True)
        results, errors = safe_hook_call(
            evdash_qt_pm.hook.transport_failure,
            context=None,
            failure=failure,
        )
    finally:
        logout.unregister()

    assert logout.plugin_name == "evdash-test-logout"
    assert results == {"evdash-test-logout": True}
    assert errors == {}


def test_safe_hook_call_isolates_errors(caplog):
    class Broken:
        @hook_impl
        def data_source_created(self, data_source):
            raise ValueError("bad plugin")

    class Good:
        @hook_impl
        def data_source_created(self, data_source):
            return data_source

    evdash_qt_pm.register(Broken(), name="evdash-test-broken")
    evdash_qt_pm.register(Good(), name="evdash-test-good")
    try:
        results, errors = safe_hook_call(
            evdash_qt_pm.hook.data_source_created, data_source="ds"
        )
    finally:
        evdash_qt_pm.unregister(name="evdash-test-broken")
        evdash_qt_pm.unregister(name="evdash-test-good")

    assert results == {"evdash-test-good": "ds"}
    assert isinstance(errors["evdash-test-broken"], ValueError)
    assert "evdash-test-broken" in caplog.text


def test_safe_hook_call_without_hook():
    assert safe_hook_call(None) == ({}, {})
    assert safe_hook_call(object()) == ({}, {})


def test_func_plugin_unknown_hook():
    with pytest.raises(ValueError, match="no `no_such_hook` hook"):

        @func_plugin
        def no_such_hook():
            pass
