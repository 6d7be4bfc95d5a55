from evdash_qt.sites.site_users import Site, SiteUsersDataSource  # noqa: F401
