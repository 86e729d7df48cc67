"""Service layer package.

Exports high-level services consumed by orchestration / presentation layers.
"""

from .auto_refresh import AutoRefresher
from .tracking_service import TrackingService

__all__ = ["AutoRefresher", "TrackingService"]
