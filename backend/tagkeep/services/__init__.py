"""Stores and services for tagkeep."""

from tagkeep.services.associations import AssociationStore, TagGroup
from tagkeep.services.history import ChangeHistoryStore
from tagkeep.services.identity import IdentityStore
from tagkeep.services.search import FileQuery, FileWithTags, Page, SearchEngine
from tagkeep.services.tags import TagStore
from tagkeep.services.tracking import BatchResult, FailedItem, FileTracker

__all__ = [
    "AssociationStore",
    "BatchResult",
    "ChangeHistoryStore",
    "FailedItem",
    "FileQuery",
    "FileTracker",
    "FileWithTags",
    "IdentityStore",
    "Page",
    "SearchEngine",
    "TagGroup",
    "TagStore",
]
