"""
Player Sync Service - pulls the club players from the federation

Every club player is enriched with its detail record through a fixed pool of
workers draining a queue, then upserted. Federation fields are overwritten;
user managed fields (participation, mentions) and the burn fields owned by
the match sync are left untouched, except for temporary players which are
replaced wholesale by the federation record.
"""

import asyncio
from datetime import datetime

from pymongo import ReplaceOne, UpdateOne
from pymongo.errors import PyMongoError

from config import settings
from exceptions import ExternalServiceException, SQYPingException
from logging_config import logger
from models.players import PlayerDB
from models.sync import SyncResult
from services.federation_adapter import FEDERATION_PLAYER_FIELDS, normalise_player
from services.federation_client import FederationSource
from services.sync_utils import bulk_write_in_batches, fetch_documents_by_ids


class PlayerSyncService:

    def __init__(self, db, source: FederationSource):
        self.db = db
        self.source = source

    async def sync_players(self) -> SyncResult:
        result = SyncResult(startedAt=datetime.now().replace(microsecond=0))
        logger.info(f"Starting player sync for club {settings.CLUB_CODE}")
        try:
            raw_players = await self.source.get_players_for_club()
            logger.info(f"Federation returned {len(raw_players)} players")
            players = await self.enrich_players(raw_players)
            result.processed = len(players)
            result.skipped = len(raw_players) - len(players)
            result.written = await self.save_players(players)
        except SQYPingException as e:
            logger.error(
                f"Player sync failed: {e.message}",
                extra={"details": e.details, "written": result.written},
            )
            result.success = False
            result.error = e.message
        except Exception as e:
            logger.error(f"Player sync failed: {e!s}", extra={"written": result.written})
            result.success = False
            result.error = str(e)

        result.finishedAt = datetime.now().replace(microsecond=0)
        await self._record_last_sync(result)
        logger.info(
            f"Player sync finished: success={result.success}, processed={result.processed}, "
            f"written={result.written}, skipped={result.skipped}"
        )
        return result

    async def enrich_players(self, raw_players: list[dict]) -> list[PlayerDB]:
        """
        Fetch every player's detail record with SYNC_ENRICHMENT_CONCURRENCY
        workers; a finished request immediately makes room for the next one.
        A missing or failing detail record keeps the list entry as is.
        """
        queue: asyncio.Queue[dict] = asyncio.Queue()
        for raw in raw_players:
            queue.put_nowait(raw)

        total = queue.qsize()
        enriched: list[PlayerDB] = []

        async def worker() -> None:
            while True:
                try:
                    raw = queue.get_nowait()
                except asyncio.QueueEmpty:
                    return
                licence = str(raw.get("licence") or "").strip()
                if not licence:
                    logger.debug(f"Skipping federation player without licence: {raw.get('nom')}")
                    continue
                try:
                    detail = await self.source.get_player_detail(licence)
                except ExternalServiceException as e:
                    logger.warning(f"No detail for licence {licence}: {e.message}")
                    detail = None
                enriched.append(normalise_player(raw, detail))
                if len(enriched) % 50 == 0:
                    logger.info(f"Enriched {len(enriched)}/{total} players")

        pool_size = max(1, min(settings.SYNC_ENRICHMENT_CONCURRENCY, total))
        await asyncio.gather(*(worker() for _ in range(pool_size)))
        return enriched

    async def save_players(self, players: list[PlayerDB]) -> int:
        if not players:
            return 0
        existing = await fetch_documents_by_ids(
            self.db, "players", [p.licence for p in players], projection={"isTemporary": 1}
        )
        temporary = {doc["_id"] for doc in existing if doc.get("isTemporary")}
        now = datetime.now().replace(microsecond=0)

        operations = []
        for player in players:
            fields = player.model_dump(mode="json", include=FEDERATION_PLAYER_FIELDS)
            if player.licence in temporary:
                logger.info(f"Replacing temporary player {player.licence} with federation record")
                operations.append(
                    ReplaceOne(
                        {"_id": player.licence},
                        {**fields, "isTemporary": False, "createdAt": now, "updatedAt": now},
                    )
                )
            else:
                operations.append(
                    UpdateOne(
                        {"_id": player.licence},
                        {"$set": {**fields, "updatedAt": now}, "$setOnInsert": {"createdAt": now}},
                        upsert=True,
                    )
                )
        return await bulk_write_in_batches(self.db, "players", operations)

    async def _record_last_sync(self, result: SyncResult) -> None:
        """A failing metadata write marks the result unsuccessful instead of raising"""
        try:
            await self.db["metadata"].update_one(
                {"_id": "lastSync"},
                {"$set": {"players": result.model_dump()}},
                upsert=True,
            )
        except PyMongoError as e:
            logger.error(
                f"Could not record player sync result: {e!s}",
                extra={"collection": "metadata", "written": result.written},
            )
            result.success = False
            if not result.error:
                result.error = f"Could not record sync result: {e!s}"
