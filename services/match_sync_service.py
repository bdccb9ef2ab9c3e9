"""
Match Sync Service - pulls teams and matches, then rebuilds the burn state

Steps:
1. fetch and upsert the club teams (user managed venue/channel kept)
2. fetch every team's matches, at most SYNC_READ_CONCURRENCY teams at a time
3. write the matches of each team in parallel, in bulk batches
4. recompute the burn fields of every player from the full stored match
   history, replacing the stored values per context

A failing team does not stop the sync: its stored matches stay as they were,
the result is flagged unsuccessful and lists the team.
"""

import asyncio
from datetime import datetime

from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from config import settings
from exceptions import SQYPingException
from logging_config import logger
from models.matches import MatchDB
from models.sync import SyncResult
from models.teams import TeamDB
from services.burnout_service import (
    BURN_FIELDS,
    BurnContext,
    PlayerMatchCounts,
    build_burn_update,
    count_matches_by_context,
)
from services.epreuve_service import recalculate_journees_by_date
from services.federation_adapter import normalise_match, normalise_team
from services.federation_client import FederationSource
from services.snapshot_service import SnapshotService
from services.sync_utils import bulk_write_in_batches, fetch_documents_by_ids

BURN_PROJECTION = {
    **{field: 1 for fields in BURN_FIELDS.values() for field in fields},
    "hasPlayedAtLeastOneMatch": 1,
}


class MatchSyncService:

    def __init__(self, db, source: FederationSource):
        self.db = db
        self.source = source

    async def sync_matches(self) -> SyncResult:
        result = SyncResult(startedAt=datetime.now().replace(microsecond=0))
        logger.info(f"Starting match sync for club {settings.CLUB_CODE}")
        try:
            raw_teams = await self.source.get_teams_for_club()
            teams = [normalise_team(raw) for raw in raw_teams]
            raw_by_team = {team.id: raw for team, raw in zip(teams, raw_teams, strict=True)}
            logger.info(f"Federation returned {len(teams)} teams")

            matches_by_team = await self.fetch_matches(teams, raw_by_team, result)
            for team in teams:
                # a team is feminine as soon as one of its matches is
                if any(m.isFemale for m in matches_by_team.get(team.id, [])):
                    team.isFemale = True
            await self.save_teams(teams)
            result.written += await self.save_matches(matches_by_team, result)
            result.processed = sum(len(matches) for matches in matches_by_team.values())

            updated_players = await self.recompute_burn_state()
            logger.info(f"Burn state updated for {updated_players} players")
        except SQYPingException as e:
            logger.error(f"Match sync failed: {e.message}", extra={"details": e.details})
            result.success = False
            result.error = e.message
        except Exception as e:
            logger.error(f"Match sync failed: {e!s}")
            result.success = False
            result.error = str(e)

        if result.failedTeams and result.success:
            result.success = False
            result.error = f"{len(result.failedTeams)} team(s) could not be synchronised"

        result.finishedAt = datetime.now().replace(microsecond=0)
        await self._record_last_sync(result)
        logger.info(
            f"Match sync finished: success={result.success}, matches={result.processed}, "
            f"written={result.written}, failed teams={len(result.failedTeams)}"
        )
        return result

    async def fetch_matches(
        self, teams: list[TeamDB], raw_by_team: dict[str, dict], result: SyncResult
    ) -> dict[str, list[MatchDB]]:
        semaphore = asyncio.Semaphore(settings.SYNC_READ_CONCURRENCY)

        async def fetch(team: TeamDB) -> list[MatchDB]:
            async with semaphore:
                raw_matches = await self.source.get_matches_for_team(raw_by_team[team.id])
            matches = []
            for raw in raw_matches:
                match = normalise_match(raw, team)
                if match is None:
                    result.skipped += 1
                    continue
                matches.append(match)
            return recalculate_journees_by_date(matches)

        fetched = await asyncio.gather(*(fetch(team) for team in teams), return_exceptions=True)

        matches_by_team: dict[str, list[MatchDB]] = {}
        for team, outcome in zip(teams, fetched, strict=True):
            if isinstance(outcome, Exception):
                logger.error(
                    f"Fetching matches of team {team.name} failed: {outcome!s}",
                    extra={"team_id": team.id},
                )
                result.failedTeams.append(team.id)
                continue
            matches_by_team[team.id] = outcome
        return matches_by_team

    async def save_teams(self, teams: list[TeamDB]) -> int:
        now = datetime.now().replace(microsecond=0)
        operations = [
            UpdateOne(
                {"_id": team.id},
                {
                    "$set": {
                        **team.model_dump(
                            mode="json", include={"name", "division", "idEpreuve", "epreuve", "isFemale"}
                        ),
                        "updatedAt": now,
                    },
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
            for team in teams
        ]
        return await bulk_write_in_batches(self.db, "teams", operations)

    async def save_matches(self, matches_by_team: dict[str, list[MatchDB]], result: SyncResult) -> int:
        """Writes each team's matches in its own bulk batches, teams in parallel"""
        now = datetime.now().replace(microsecond=0)

        async def write(team_id: str, matches: list[MatchDB]) -> int:
            operations = []
            for match in matches:
                document = match.model_dump(mode="json", exclude={"id", "createdAt", "updatedAt"})
                document["date"] = match.date
                document["updatedAt"] = now
                operations.append(
                    UpdateOne(
                        {"_id": match.id},
                        {"$set": document, "$setOnInsert": {"createdAt": now}},
                        upsert=True,
                    )
                )
            return await bulk_write_in_batches(self.db, "matches", operations)

        team_ids = list(matches_by_team)
        outcomes = await asyncio.gather(
            *(write(team_id, matches_by_team[team_id]) for team_id in team_ids),
            return_exceptions=True,
        )
        written = 0
        for team_id, outcome in zip(team_ids, outcomes, strict=True):
            if isinstance(outcome, Exception):
                logger.error(f"Writing matches of team {team_id} failed: {outcome!s}")
                result.failedTeams.append(team_id)
            else:
                written += outcome
        return written

    async def recompute_burn_state(self) -> int:
        """
        Rebuild every player's burn fields from the stored match history.
        Players with burn data stored but no match left get it removed and
        hasPlayedAtLeastOneMatch reset.
        """
        teams = await SnapshotService(self.db).load_teams_with_matches()
        counts = count_matches_by_context(teams)
        licences = {licence for by_player in counts.values() for licence in by_player}

        docs = await fetch_documents_by_ids(self.db, "players", licences, projection=BURN_PROJECTION)
        found = {doc["_id"] for doc in docs}
        stale_query = {
            "_id": {"$nin": list(licences)},
            "$or": [
                {"hasPlayedAtLeastOneMatch": True},
                *({field: {"$exists": True}} for fields in BURN_FIELDS.values() for field in fields),
            ],
        }
        docs += await self.db["players"].find(stale_query, BURN_PROJECTION).to_list(length=None)

        missing = licences - found
        if missing:
            logger.debug(f"{len(missing)} licences in match sheets are not club players: {sorted(missing)}")

        operations = []
        for doc in docs:
            update = self._player_burn_update(doc, counts)
            if update:
                operations.append(UpdateOne({"_id": doc["_id"]}, update))
        await bulk_write_in_batches(self.db, "players", operations)
        return len(operations)

    @staticmethod
    def _player_burn_update(doc: dict, counts: dict[BurnContext, PlayerMatchCounts]) -> dict:
        to_set: dict = {}
        to_unset: dict = {}
        for context in BurnContext:
            context_set, context_unset = build_burn_update(doc, context, counts[context].get(doc["_id"]))
            to_set.update(context_set)
            to_unset.update(context_unset)
        if any(doc["_id"] in counts[context] for context in BurnContext):
            to_set["hasPlayedAtLeastOneMatch"] = True
        elif doc.get("hasPlayedAtLeastOneMatch"):
            to_set["hasPlayedAtLeastOneMatch"] = False

        update = {}
        if to_set:
            update["$set"] = to_set
        if to_unset:
            update["$unset"] = to_unset
        return update

    async def _record_last_sync(self, result: SyncResult) -> None:
        try:
            await self.db["metadata"].update_one(
                {"_id": "lastSync"}, {"$set": {"matches": result.model_dump()}}, upsert=True
            )
        except PyMongoError as e:
            logger.error(
                f"Could not record match sync result: {e!s}",
                extra={"collection": "metadata", "failed_teams": result.failedTeams},
            )
            result.success = False
            if not result.error:
                result.error = f"Could not record sync result: {e!s}"
