"""The users of a site.

The table lists the users assigned to one site. Users can be added through
the users chooser (when the site allows it) and removed from the site; the
users themselves are never deleted.
"""

import logging
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from attrs import define

from evdash.constants import ButtonAction, ScreenSize, TableMode
from evdash.descriptors import (
    ActionContext,
    ColumnDef,
    RowSelectionDef,
    TableDef,
)
from evdash.utils import get_flag
from evdash_qt.actions import (
    AssignAction,
    ResetFiltersAction,
    TableAction,
    UnassignAction,
)
from evdash_qt.data_source import DEFAULT_MESSAGES, TableDataSource
from evdash_qt.dialogs import SizeProfile

if TYPE_CHECKING:
    from PyQt5.QtCore import QObject  # noqa: F401

    from evdash_qt.context import QtContext  # noqa: F401
    from evdash_qt.ports import DataProvider  # noqa: F401

logger = logging.getLogger(__name__)

# The entries of the table are user-site links: `{"user": {...},
# "siteAdmin": bool, "siteOwner": bool}`.
UserSite = Dict[str, Any]


@define
class Site:
    """The part of a site the table needs."""

    id: str
    name: str = ""
    can_assign_users: bool = False
    can_unassign_users: bool = False


def can_assign(actx: ActionContext) -> bool:
    return get_flag(actx.auth, "can_assign_users")


def can_unassign(actx: ActionContext) -> bool:
    return get_flag(actx.auth, "can_unassign_users")


class SiteUsersDataSource(TableDataSource[UserSite]):
    """The users of a site.

    Attributes:
        users_chooser: The dialog component used to pick the users to add.
            It receives a static filter that leaves out the users of the
            site and restricts the list to users of this organization.
    """

    table_id = "site_users"
    requires_parent = True
    messages = {
        **DEFAULT_MESSAGES,
        "assign.success": (
            "sites.update_users_success",
            "The users have been added to the site",
        ),
        "assign.error": (
            "sites.update_users_error",
            "Error occurred while adding the users to the site",
        ),
        "unassign.success": (
            "sites.remove_users_success",
            "The users have been removed from the site",
        ),
        "unassign.error": (
            "sites.remove_users_error",
            "Error occurred while removing the users from the site",
        ),
    }

    users_chooser: Any

    def __init__(
        self,
        ctx: "QtContext",
        provider: "DataProvider",
        users_chooser: Any = None,
        site: Optional[Site] = None,
        mode: TableMode = TableMode.READ_WRITE,
        parent: Optional["QObject"] = None,
    ):
        self.users_chooser = users_chooser
        super().__init__(
            ctx,
            provider,
            mode=mode,
            parent_entity=site,
            parent=parent,
        )

    @property
    def site(self) -> Optional[Site]:
        return self.parent_entity

    def set_site(self, site: Optional[Site]) -> None:
        self.set_parent(site)

    def static_filters(self) -> Dict[str, Any]:
        if self.site is None:
            return {}
        return {"SiteID": self.site.id}

    def build_table_def(self) -> TableDef:
        if self.mode == TableMode.READ_WRITE:
            site = self.site
            selectable = site is not None and (
                site.can_assign_users or site.can_unassign_users
            )
            selection = RowSelectionDef(enabled=selectable, multiple=True)
        else:
            selection = RowSelectionDef(enabled=False, multiple=False)
        return TableDef(
            id=self.table_id,
            class_name="table-dialog-list",
            row_id_field="user.id",
            row_selection=selection,
            search_enabled=True,
        )

    def build_column_defs(self) -> List[ColumnDef]:
        columns = [
            ColumnDef(
                id="user.name",
                name="users.name",
                class_name="text-left col-25p",
                sorted=True,
                direction="asc",
                sortable=True,
            ),
            ColumnDef(
                id="user.firstName",
                name="users.first_name",
                class_name="text-left col-25p",
            ),
            ColumnDef(
                id="user.email",
                name="users.email",
                class_name="text-left col-40p",
            ),
        ]
        if self.mode == TableMode.READ_WRITE:
            columns.extend(
                [
                    ColumnDef(
                        id="siteAdmin",
                        name="sites.admin_role",
                        header_class="text-center",
                        class_name="col-10p",
                    ),
                    ColumnDef(
                        id="siteOwner",
                        name="sites.owner_role",
                        header_class="text-center",
                        class_name="col-10p",
                    ),
                ]
            )
        return columns

    def build_actions(self) -> List[TableAction]:
        actions: List[TableAction] = []
        if self.mode == TableMode.READ_WRITE:
            actions.append(
                AssignAction(
                    self.users_chooser,
                    id=ButtonAction.ADD,
                    id_field="key",
                    size=SizeProfile.uniform(ScreenSize.XL),
                    static_filter=self.chooser_filter,
                    visible_if=can_assign,
                )
            )
            actions.append(
                UnassignAction(
                    id=ButtonAction.REMOVE,
                    name="general.remove",
                    icon="remove",
                    confirm_title=(
                        "sites.remove_users_title",
                        "Remove User(s)",
                    ),
                    confirm_message=(
                        "sites.remove_users_confirm",
                        "Do you really want to remove the selected users "
                        "from this site?",
                    ),
                    visible_if=can_unassign,
                )
            )
        actions.append(ResetFiltersAction())
        return actions

    def chooser_filter(self, actx: ActionContext) -> Dict[str, Any]:
        """Offer only the users that are not yet on the site."""
        return {"ExcludeSiteID": actx.auth.id, "Issuer": True}
