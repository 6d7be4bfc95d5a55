from typing import TYPE_CHECKING

from pluggy import HookimplMarker, HookspecMarker, PluginManager

if TYPE_CHECKING:
    from evdash.errors import TableError
    from evdash_qt.context import QtContext
    from evdash_qt.data_source import TableDataSource


hook_spec = HookspecMarker("evdash-qt")
hook_impl = HookimplMarker("evdash-qt")


class ContextHooks:
    """Hooks related to the QtContext."""

    @hook_spec
    def context_created(self, context: "QtContext") -> None:
        """Called when a context is created."""
        raise NotImplementedError

    @hook_spec
    def transport_failure(
        self, context: "QtContext", failure: "TableError"
    ) -> None:
        """Called for every non-validation failure reported through the
        context.

        This is where session handling lives: a plugin that sees an expired
        authentication (`failure.is_auth_expired`) can log the user out.
        """
        raise NotImplementedError


class DataSourceHooks:
    """Hooks related to table data sources."""

    @hook_spec
    def data_source_created(self, data_source: "TableDataSource") -> None:
        """Called when a data source is constructed."""
        raise NotImplementedError


# The PluginManager for the evdash-qt project.
evdash_qt_pm = PluginManager("evdash-qt")
evdash_qt_pm.add_hookspecs(ContextHooks)
evdash_qt_pm.add_hookspecs(DataSourceHooks)

# To have your plugin automatically loaded, add an entry point to your
# pyproject.toml file.
#
# [project.entry-points.evdash_qt]
# logout = my_plugin.session:LogoutOnExpiry
#
evdash_qt_pm.load_setuptools_entrypoints("evdash_qt")
