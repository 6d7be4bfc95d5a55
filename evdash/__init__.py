"""Data layer of the tabular data-source engine.

The package holds the pieces that do not depend on Qt: filter, paging and
sort state, the query builder, page and mutation results, request tokens
and the declarative table descriptors.
"""

__version__ = "2.6.1"
