# Services package
from .composition_service import CompositionService
from .match_sync_service import MatchSyncService
from .player_sync_service import PlayerSyncService
from .snapshot_service import SnapshotService

__all__ = ["CompositionService", "MatchSyncService", "PlayerSyncService", "SnapshotService"]
