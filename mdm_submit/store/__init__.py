"""
Store package for MDM Submit.

Resource store access: the paginated query cursor and the per-type DAOs.
"""

from mdm_submit.store.cursor import PaginatedQueryCursor, ResultCursor
from mdm_submit.store.dao import DaoRegistry, PostgresResourceDao, ResourceDao

__all__ = [
    "DaoRegistry",
    "PaginatedQueryCursor",
    "PostgresResourceDao",
    "ResourceDao",
    "ResultCursor",
]
