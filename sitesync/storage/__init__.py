"""
SiteSync Storage Layer
======================

Manifest and site document persistence with atomic replacement.
"""

from .document_store import DocumentStore
from .manifest_repository import ManifestRepository, commit

__all__ = [
    "DocumentStore",
    "ManifestRepository",
    "commit",
]
