"""
Snapshot Service - loads the players and teams the rule engine works on

The validators are pure functions over a snapshot; this service is the only
place reading that snapshot from MongoDB.
"""

from pymongo.errors import PyMongoError

from exceptions import DatabaseOperationException
from models.matches import MatchDB
from models.players import PlayerDB
from models.teams import TeamDB, TeamWithMatches


class SnapshotService:

    def __init__(self, db):
        self.db = db

    async def load_players(self) -> list[PlayerDB]:
        try:
            docs = await self.db["players"].find({}).to_list(length=None)
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="find", collection="players", details={"error": str(e)}
            ) from e
        return [PlayerDB(**doc) for doc in docs]

    async def load_teams_with_matches(self) -> list[TeamWithMatches]:
        try:
            team_docs = await self.db["teams"].find({}).to_list(length=None)
            match_docs = await self.db["matches"].find({}).to_list(length=None)
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="find", collection="teams/matches", details={"error": str(e)}
            ) from e

        matches_by_team: dict[str, list[MatchDB]] = {}
        for doc in match_docs:
            match = MatchDB(**doc)
            matches_by_team.setdefault(match.teamId, []).append(match)

        teams = []
        for doc in team_docs:
            team = TeamDB(**doc)
            matches = sorted(
                matches_by_team.get(team.id, []), key=lambda m: (m.phase.value, m.journee)
            )
            teams.append(TeamWithMatches(team=team, matches=matches))
        return teams
