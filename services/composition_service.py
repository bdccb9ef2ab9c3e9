"""
Composition Service - match day compositions, availabilities and templates

Reads the snapshot, runs the pure validators and commits accepted changes.
Commits are read-validate-write guarded by a revision counter: a write only
lands if the document still has the revision the validation was made
against, otherwise ConcurrentModificationException is raised.
"""

from datetime import datetime

from pymongo.errors import DuplicateKeyError, PyMongoError

from config import settings
from exceptions import (
    ConcurrentModificationException,
    DatabaseOperationException,
    ResourceNotFoundException,
    ValidationException,
)
from logging_config import logger
from models.compositions import (
    AppliedDefaults,
    AssignmentCheckRequest,
    AssignmentValidationResult,
    AssignPlayerRequest,
    AvailabilityDB,
    AvailabilityEntry,
    CompositionDB,
    CompositionMap,
    CompositionView,
    DefaultCompositionDB,
    TeamCompositionView,
    composition_key,
    default_composition_key,
)
from models.matches import ChampionshipTypeEnum, EpreuveEnum, PhaseEnum
from models.players import PlayerDB
from models.teams import TeamWithMatches
from services.assignment_validation_service import can_assign_player_to_team
from services.composition_validation_service import (
    merge_availability_violations,
    validate_team_composition_state,
)
from services.defaults_service import MAX_PLAYERS_PER_DEFAULT_TEAM, apply_default_compositions
from services.epreuve_service import get_team_epreuve, normalise_phase
from services.snapshot_service import SnapshotService
from services.team_classifier import (
    classify_gender,
    extract_team_number,
    get_championship_players,
    get_max_players_for_team,
    get_players_by_type,
)


def teams_for(
    teams: list[TeamWithMatches], epreuve: EpreuveEnum, championship_type: ChampionshipTypeEnum
) -> list[TeamWithMatches]:
    """Teams of one composition scope; the Paris championship is mixed"""
    return [
        team
        for team in teams
        if get_team_epreuve(team) == epreuve
        and (epreuve == EpreuveEnum.CHAMPIONNAT_PARIS or classify_gender(team.matches) == championship_type)
    ]


def championship_types_for(epreuve: EpreuveEnum) -> list[ChampionshipTypeEnum]:
    if epreuve == EpreuveEnum.CHAMPIONNAT_PARIS:
        return [ChampionshipTypeEnum.MASCULIN]
    return list(ChampionshipTypeEnum)


class CompositionService:

    def __init__(self, db):
        self.db = db
        self.snapshot = SnapshotService(db)

    # --- reads

    async def _find_one(self, collection: str, key: str) -> dict | None:
        try:
            return await self.db[collection].find_one({"_id": key})
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="find_one", collection=collection, details={"key": key, "error": str(e)}
            ) from e

    async def get_composition(
        self, epreuve: EpreuveEnum, phase: PhaseEnum, journee: int, championship_type: ChampionshipTypeEnum
    ) -> CompositionDB:
        phase = normalise_phase(phase, epreuve)
        key = composition_key(epreuve, phase, journee, championship_type)
        doc = await self._find_one("compositions", key)
        if doc is None:
            return CompositionDB(
                _id=key, epreuve=epreuve, phase=phase, journee=journee, championshipType=championship_type
            )
        return CompositionDB(**doc)

    async def get_availability(
        self, epreuve: EpreuveEnum, phase: PhaseEnum, journee: int, championship_type: ChampionshipTypeEnum
    ) -> dict[str, AvailabilityEntry]:
        phase = normalise_phase(phase, epreuve)
        doc = await self._find_one("availabilities", composition_key(epreuve, phase, journee, championship_type))
        if doc is None:
            return {}
        return {pid: AvailabilityEntry(**entry) for pid, entry in (doc.get("players") or {}).items()}

    async def get_default_composition(
        self, epreuve: EpreuveEnum, phase: PhaseEnum, championship_type: ChampionshipTypeEnum
    ) -> DefaultCompositionDB:
        phase = normalise_phase(phase, epreuve)
        key = default_composition_key(epreuve, phase, championship_type)
        doc = await self._find_one("compositionDefaults", key)
        if doc is None:
            return DefaultCompositionDB(
                _id=key, epreuve=epreuve, phase=phase, championshipType=championship_type
            )
        return DefaultCompositionDB(**doc)

    # --- validation

    def build_view(
        self,
        composition: CompositionDB,
        players: list[PlayerDB],
        teams: list[TeamWithMatches],
        availability: dict[str, AvailabilityEntry],
    ) -> CompositionView:
        scope = teams_for(teams, composition.epreuve, composition.championshipType)
        views = []
        for team in sorted(scope, key=lambda t: extract_team_number(t.team.name)):
            roster = composition.teams.get(team.id, [])
            max_players = get_max_players_for_team(team)
            validation = validate_team_composition_state(
                team.id, players, teams, composition.teams, composition.phase, composition.journee, max_players
            )
            if roster:
                validation = merge_availability_violations(validation, roster, availability, players)
            views.append(
                TeamCompositionView(
                    teamId=team.id,
                    teamName=team.team.name,
                    teamNumber=extract_team_number(team.team.name),
                    division=team.team.division,
                    maxPlayers=max_players,
                    playerIds=roster,
                    validation=validation,
                )
            )
        return CompositionView(
            epreuve=composition.epreuve,
            phase=composition.phase,
            journee=composition.journee,
            championshipType=composition.championshipType,
            revision=composition.revision,
            teams=views,
            poolPlayerIds=[player.id for player in get_championship_players(players, composition.epreuve)],
        )

    def _pool_rejection(
        self,
        player_id: str,
        players: list[PlayerDB],
        epreuve: EpreuveEnum,
        championship_type: ChampionshipTypeEnum,
    ) -> AssignmentValidationResult | None:
        """Rejects a known player who is not entered in the competition and championship type"""
        player = next((p for p in players if p.id == player_id), None)
        if player is None:
            # unknown ids are reported by the validator
            return None
        pool = get_players_by_type(get_championship_players(players, epreuve), championship_type)
        if any(p.id == player_id for p in pool):
            return None
        return AssignmentValidationResult(
            canAssign=False, reason=f"{player.displayName} n'est pas engagé dans ce championnat"
        )

    async def get_composition_view(
        self, epreuve: EpreuveEnum, phase: PhaseEnum, journee: int, championship_type: ChampionshipTypeEnum
    ) -> CompositionView:
        composition = await self.get_composition(epreuve, phase, journee, championship_type)
        availability = await self.get_availability(epreuve, phase, journee, championship_type)
        players = get_players_by_type(await self.snapshot.load_players(), championship_type)
        teams = await self.snapshot.load_teams_with_matches()
        return self.build_view(composition, players, teams, availability)

    async def check_assignment(self, request: AssignmentCheckRequest) -> AssignmentValidationResult:
        compositions = request.compositions
        if compositions is None:
            stored = await self.get_composition(
                request.epreuve, request.phase, request.journee, request.championshipType
            )
            compositions = stored.teams
        players = await self.snapshot.load_players()
        rejection = self._pool_rejection(request.playerId, players, request.epreuve, request.championshipType)
        if rejection is not None:
            return rejection
        teams = await self.snapshot.load_teams_with_matches()
        return can_assign_player_to_team(
            request.playerId,
            request.teamId,
            players,
            teams,
            compositions,
            normalise_phase(request.phase, request.epreuve),
            request.journee,
        )

    # --- writes

    async def _commit(self, collection: str, key: str, revision: int, fields: dict) -> int:
        """Write fields only if the stored revision is still `revision`; returns the new revision"""
        try:
            result = await self.db[collection].update_one(
                {"_id": key, "revision": revision},
                {"$set": {**fields, "updatedAt": datetime.now().replace(microsecond=0)}, "$inc": {"revision": 1}},
                upsert=True,
            )
        except DuplicateKeyError as e:
            # the upsert collided with a document holding another revision
            raise ConcurrentModificationException(
                "Composition", key, details={"expected_revision": revision}
            ) from e
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="update_one", collection=collection, details={"key": key, "error": str(e)}
            ) from e
        if settings.DEBUG_LEVEL > 0:
            logger.debug(
                f"Committed {collection}/{key} revision {revision + 1}",
                extra={"upserted": result.upserted_id is not None},
            )
        return revision + 1

    async def assign_player(
        self,
        epreuve: EpreuveEnum,
        phase: PhaseEnum,
        journee: int,
        championship_type: ChampionshipTypeEnum,
        request: AssignPlayerRequest,
    ) -> tuple[AssignmentValidationResult, CompositionDB]:
        """
        Move a player into a team (or out of every team when teamId is None),
        validated against the latest stored composition.
        """
        composition = await self.get_composition(epreuve, phase, journee, championship_type)
        if request.expectedRevision is not None and request.expectedRevision != composition.revision:
            raise ConcurrentModificationException(
                "Composition",
                composition.id,
                details={"expected_revision": request.expectedRevision, "revision": composition.revision},
            )

        players = await self.snapshot.load_players()
        teams = await self.snapshot.load_teams_with_matches()
        scope_ids = {team.id for team in teams_for(teams, epreuve, championship_type)}

        if request.teamId is not None:
            if request.teamId not in scope_ids:
                raise ResourceNotFoundException(
                    "Team", request.teamId, details={"epreuve": epreuve.value, "championshipType": championship_type.value}
                )
            result = self._pool_rejection(request.playerId, players, epreuve, championship_type)
            if result is None:
                result = can_assign_player_to_team(
                    request.playerId, request.teamId, players, teams, composition.teams, composition.phase, journee
                )
            if not result.canAssign:
                logger.info(
                    f"Assignment of {request.playerId} to {request.teamId} rejected: {result.reason}",
                    extra={"composition": composition.id},
                )
                return result, composition
        else:
            result = AssignmentValidationResult(canAssign=True)

        # a player belongs to at most one team of the same day and type
        teams_map: CompositionMap = {
            team_id: [pid for pid in roster if pid != request.playerId]
            for team_id, roster in composition.teams.items()
        }
        if request.teamId is not None:
            teams_map.setdefault(request.teamId, []).append(request.playerId)

        composition.revision = await self._commit(
            "compositions",
            composition.id,
            composition.revision,
            {
                "epreuve": epreuve.value,
                "phase": composition.phase.value,
                "journee": journee,
                "championshipType": championship_type.value,
                "teams": teams_map,
            },
        )
        composition.teams = teams_map
        logger.info(
            f"Player {request.playerId} assigned to {request.teamId}",
            extra={"composition": composition.id, "revision": composition.revision},
        )
        return result, composition

    async def save_availability(
        self,
        epreuve: EpreuveEnum,
        phase: PhaseEnum,
        journee: int,
        championship_type: ChampionshipTypeEnum,
        answers: dict[str, AvailabilityEntry],
    ) -> AvailabilityDB:
        """
        Merge player answers into the match day availability. Each answer is
        its own field update, so concurrent answers of different players
        never overwrite each other.
        """
        if not answers:
            raise ValidationException("players", "At least one player answer is required")
        malformed = sorted(pid for pid in answers if not pid or "." in pid or pid.startswith("$"))
        if malformed:
            raise ValidationException("players", "Invalid player id", details={"player_ids": malformed})
        known = {player.id for player in await self.snapshot.load_players()}
        unknown = sorted(set(answers) - known)
        if unknown:
            raise ResourceNotFoundException("Player", unknown[0], details={"player_ids": unknown})

        phase = normalise_phase(phase, epreuve)
        key = composition_key(epreuve, phase, journee, championship_type)
        now = datetime.now().replace(microsecond=0)
        try:
            await self.db["availabilities"].update_one(
                {"_id": key},
                {
                    "$set": {
                        "epreuve": epreuve.value,
                        "phase": phase.value,
                        "journee": journee,
                        "championshipType": championship_type.value,
                        "updatedAt": now,
                        **{f"players.{pid}": entry.model_dump() for pid, entry in answers.items()},
                    },
                    "$setOnInsert": {"createdAt": now},
                },
                upsert=True,
            )
        except PyMongoError as e:
            raise DatabaseOperationException(
                operation="update_one", collection="availabilities", details={"key": key, "error": str(e)}
            ) from e
        logger.info(f"Availability of {len(answers)} player(s) saved", extra={"availability": key})
        return AvailabilityDB(**await self._find_one("availabilities", key))

    async def save_default_composition(
        self,
        epreuve: EpreuveEnum,
        phase: PhaseEnum,
        championship_type: ChampionshipTypeEnum,
        teams_map: CompositionMap,
    ) -> DefaultCompositionDB:
        teams = await self.snapshot.load_teams_with_matches()
        scope_ids = {team.id for team in teams_for(teams, epreuve, championship_type)}
        seen: set[str] = set()
        for team_id, roster in teams_map.items():
            if team_id not in scope_ids:
                raise ResourceNotFoundException("Team", team_id)
            if len(roster) > MAX_PLAYERS_PER_DEFAULT_TEAM:
                raise ValidationException(
                    "teams",
                    f"A default composition holds at most {MAX_PLAYERS_PER_DEFAULT_TEAM} players per team",
                    details={"team_id": team_id, "count": len(roster)},
                )
            duplicated = seen.intersection(roster)
            if duplicated:
                raise ValidationException(
                    "teams", "A player can only be in one default team", details={"player_ids": sorted(duplicated)}
                )
            seen.update(roster)

        defaults = await self.get_default_composition(epreuve, phase, championship_type)
        defaults.revision = await self._commit(
            "compositionDefaults",
            defaults.id,
            defaults.revision,
            {
                "epreuve": epreuve.value,
                "phase": defaults.phase.value,
                "championshipType": championship_type.value,
                "teams": teams_map,
            },
        )
        defaults.teams = teams_map
        return defaults

    async def apply_defaults(
        self, epreuve: EpreuveEnum, phase: PhaseEnum, journee: int, force: bool = False
    ) -> AppliedDefaults:
        """
        Fill the match day compositions of both championship types from the
        templates. A composition with explicit choices is kept unless force.
        """
        phase = normalise_phase(phase, epreuve)
        # players outside the competition are dropped like unknown ones
        players = get_championship_players(await self.snapshot.load_players(), epreuve)
        teams = await self.snapshot.load_teams_with_matches()

        defaults: dict[ChampionshipTypeEnum, CompositionMap] = {}
        availabilities: dict[ChampionshipTypeEnum, dict[str, AvailabilityEntry]] = {}
        compositions: dict[ChampionshipTypeEnum, CompositionDB] = {}
        for championship_type in championship_types_for(epreuve):
            composition = await self.get_composition(epreuve, phase, journee, championship_type)
            if not force and any(composition.teams.values()):
                logger.info(f"Composition {composition.id} already filled, defaults not applied")
                continue
            compositions[championship_type] = composition
            defaults[championship_type] = (
                await self.get_default_composition(epreuve, phase, championship_type)
            ).teams
            availabilities[championship_type] = await self.get_availability(
                epreuve, phase, journee, championship_type
            )

        scoped_teams = [
            team for championship_type in compositions for team in teams_for(teams, epreuve, championship_type)
        ]
        application = apply_default_compositions(defaults, availabilities, players, scoped_teams, phase)

        applied = AppliedDefaults(epreuve=epreuve, phase=phase, journee=journee)
        for championship_type, composition_map in application.compositions.items():
            composition = compositions[championship_type]
            await self._commit(
                "compositions",
                composition.id,
                composition.revision,
                {
                    "epreuve": epreuve.value,
                    "phase": phase.value,
                    "journee": journee,
                    "championshipType": championship_type.value,
                    "teams": composition_map,
                },
            )
            applied.compositions[championship_type] = composition_map
        applied.assignedCount = sum(len(roster) for roster in application.combined.values())
        applied.droppedPlayerIds = application.droppedPlayerIds
        logger.info(
            f"Defaults applied to {epreuve.value}/{phase.value}/J{journee}: "
            f"{applied.assignedCount} assigned, {len(applied.droppedPlayerIds)} dropped"
        )
        return applied
