"""Application services."""

from trackdeck.application.services.artist_stats_service import ArtistStatsService
from trackdeck.application.services.notification_lifecycle import NotificationLifecycleManager
from trackdeck.application.services.release_check_service import ReleaseCheckService
from trackdeck.application.services.release_detector import DetectionResult, ReleaseDetector
from trackdeck.application.services.role_gate import Decision, RoleGate
from trackdeck.application.services.stats_aggregator import StatsAggregator
from trackdeck.application.services.tracking_service import (
    TrackingService,
    TriggerResult,
    TriggerStatus,
)
from trackdeck.application.services.update_coordinator import TriggerKey, UpdateCoordinator

__all__ = [
    "ArtistStatsService",
    "Decision",
    "DetectionResult",
    "NotificationLifecycleManager",
    "ReleaseCheckService",
    "ReleaseDetector",
    "RoleGate",
    "StatsAggregator",
    "TrackingService",
    "TriggerKey",
    "TriggerResult",
    "TriggerStatus",
    "UpdateCoordinator",
]
