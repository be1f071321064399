"""
SiteSync Processing Module
==========================

Normalization, identity diffing and the sync pipelines.
"""

from .normalizer import RecordNormalizer
from .identity import IdentityIndex, build_index, partition
from .pipeline import BlogSyncPipeline, EventSyncPipeline, SyncResult, SyncStatus

__all__ = [
    "RecordNormalizer",
    "IdentityIndex",
    "build_index",
    "partition",
    "BlogSyncPipeline",
    "EventSyncPipeline",
    "SyncResult",
    "SyncStatus",
]
