"""
Federation Client - access to the table tennis federation data

FederationSource is the narrow interface the sync services depend on.
FederationClient implements it over the JSON gateway configured by
FEDERATION_API_URL. Payloads are returned raw; services.federation_adapter
turns them into models.
"""

import asyncio
import ssl
import urllib.parse
from typing import Any, Protocol

import aiohttp
import certifi

from config import settings
from exceptions import ExternalServiceException
from logging_config import logger

SERVICE_NAME = "FFTT_API"


class FederationSource(Protocol):
    async def get_teams_for_club(self) -> list[dict]: ...

    async def get_players_for_club(self) -> list[dict]: ...

    async def get_matches_for_team(self, team: dict) -> list[dict]: ...

    async def get_player_detail(self, licence: str) -> dict | None: ...


class FederationClient:
    """aiohttp client, use as an async context manager"""

    def __init__(
        self,
        base_url: str | None = None,
        club_code: str | None = None,
        api_key: str | None = None,
        timeout: int | None = None,
    ):
        self.base_url = (base_url or settings.FEDERATION_API_URL).rstrip("/")
        self.club_code = club_code or settings.CLUB_CODE
        self.api_key = api_key if api_key is not None else settings.FEDERATION_API_KEY
        self.timeout = aiohttp.ClientTimeout(total=timeout or settings.FEDERATION_TIMEOUT_SEC)
        self.session: aiohttp.ClientSession | None = None
        self._detail_semaphore = asyncio.Semaphore(settings.SYNC_READ_CONCURRENCY)

    async def __aenter__(self) -> "FederationClient":
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        connector = aiohttp.TCPConnector(ssl=ssl_context, limit=settings.SYNC_ENRICHMENT_CONCURRENCY)
        headers = {"Accept": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        self.session = aiohttp.ClientSession(
            timeout=self.timeout, connector=connector, headers=headers
        )
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if self.session is not None:
            await self.session.close()
            self.session = None

    async def _get(self, path: str, params: dict[str, Any] | None = None, allow_404: bool = False):
        if self.session is None:
            raise RuntimeError("FederationClient must be used as an async context manager")
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            async with self.session.get(url, params=params) as response:
                if response.status == 200:
                    return await response.json(content_type=None)
                if response.status == 404 and allow_404:
                    logger.debug(f"Federation API returned 404 for {url}")
                    return None
                try:
                    error_detail = await response.text()
                except aiohttp.ClientError:
                    error_detail = "Unable to read error response"
                raise ExternalServiceException(
                    service_name=SERVICE_NAME,
                    message=f"Request failed (status {response.status})",
                    details={"url": url, "status_code": response.status, "error_detail": error_detail},
                )
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ExternalServiceException(
                service_name=SERVICE_NAME,
                message=f"Request failed: {e!s}",
                details={"url": url},
            ) from e

    async def get_teams_for_club(self) -> list[dict]:
        club = urllib.parse.quote(self.club_code)
        return await self._get(f"clubs/{club}/teams") or []

    async def get_players_for_club(self) -> list[dict]:
        club = urllib.parse.quote(self.club_code)
        return await self._get(f"clubs/{club}/players") or []

    async def get_player_detail(self, licence: str) -> dict | None:
        return await self._get(f"players/{urllib.parse.quote(licence)}", allow_404=True)

    async def get_matches_for_team(self, team: dict) -> list[dict]:
        """
        Encounters of the team's pool that involve the club, each with its
        sheet (players, individual games) under "details" when available.
        """
        division_link = team.get("lienDivision") or team.get("lien_division")
        if not division_link:
            logger.debug(f"Team {team.get('libelle')} has no division link, no matches fetched")
            return []

        encounters = await self._get("divisions/encounters", params={"lien": division_link}) or []
        team_label = str(team.get("libelle") or "")
        club_name = settings.CLUB_NAME.lower()
        own = [
            e for e in encounters
            if club_name in str(e.get("nomEquipeA", "")).lower()
            or club_name in str(e.get("nomEquipeB", "")).lower()
        ]
        # keep the encounters of this team when the pool holds several club teams
        if team_label:
            same_team = [
                e for e in own
                if team_label.lower() in (str(e.get("nomEquipeA", "")).lower(), str(e.get("nomEquipeB", "")).lower())
            ]
            own = same_team or own

        async def with_details(encounter: dict) -> dict:
            link = encounter.get("lien")
            if not link:
                return encounter
            async with self._detail_semaphore:
                details = await self._get("encounters/details", params={"lien": link}, allow_404=True)
            return {**encounter, "details": details} if details else encounter

        return list(await asyncio.gather(*(with_details(e) for e in own)))
