"""
SiteSync - Static Site Content Sync
===================================

Keeps a hand-built static site in step with its external content sources.

Main Components:
- Ingestion: Medium RSS and Eventbrite API transport
- Processing: normalization, identity diffing and the sync pipelines
- Delivery: page and card rendering, marker-based splicing, newsletter
- Storage: atomic manifest and document persistence
"""

__version__ = "1.0.0"
__description__ = "Idempotent feed-to-static-site sync"

from .config.settings import get_settings
from .utils.logging import configure_application_logging, get_logger_for_component
from .utils.exceptions import SiteSyncError

__all__ = [
    "get_settings",
    "configure_application_logging",
    "get_logger_for_component",
    "SiteSyncError",
]
