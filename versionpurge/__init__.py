"""versionpurge - purge every object version and delete marker from a bucket

The purge engine lists a versioned bucket page by page and deletes each
page's versions and delete markers in batches of at most 1000 keys, until
the listing is drained.
"""

from .exceptions import (
    DeleteError,
    ListError,
    PurgeCancelledError,
    PurgeError,
    StalledListingError,
)
from .models import (
    DeletePhase,
    ListingPage,
    ObjectVersionRef,
    PaginationCursor,
    PurgeResult,
)
from .orchestrator import PurgeOrchestrator, purge_bucket

__version__ = "0.1.0"

__all__ = [
    "DeleteError",
    "ListError",
    "PurgeCancelledError",
    "PurgeError",
    "StalledListingError",
    "DeletePhase",
    "ListingPage",
    "ObjectVersionRef",
    "PaginationCursor",
    "PurgeResult",
    "PurgeOrchestrator",
    "purge_bucket",
]
