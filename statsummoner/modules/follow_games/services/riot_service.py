# statsummoner/modules/follow_games/services/riot_service.py

import aiohttp
import logging
from typing import Any, Optional, Type
from urllib.parse import quote
from statsummoner.core.utils import retry_on_transient_error
from statsummoner.modules.follow_games.models import MatchDetail, PLATFORM_TO_REGION

logger = logging.getLogger(__name__)


class RiotApiError(Exception):
    """A Riot API call answered with a non-2xx status or an unusable body."""

    def __init__(self, status: int, url: str, message: str = ""):
        self.status = status
        self.url = url
        super().__init__(f"Riot API returned {status} for {url}" + (f": {message}" if message else ""))


class RiotRateLimitError(RiotApiError):
    def __init__(self, status: int, url: str, message: str = "", retry_after: Optional[float] = None):
        super().__init__(status, url, message)
        self.retry_after = retry_after


class RiotServerError(RiotApiError):
    pass


class SummonerNotFoundError(RiotApiError):
    pass


TRANSIENT_RIOT_ERRORS = (RiotRateLimitError, RiotServerError, aiohttp.ClientConnectionError)


def regional_route(platform: str) -> str:
    """Map a platform value such as 'euw1' to its regional cluster ('europe')."""
    try:
        return PLATFORM_TO_REGION[platform.lower()]
    except KeyError:
        raise ValueError(f"Unknown Riot platform: '{platform}'") from None


class RiotClient:
    """
    Thin async wrapper around the Riot endpoints the follow feature uses.
    The aiohttp session is owned by the caller and shared for the lifetime of the bot.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        api_key: str,
        timeout_seconds: float = 10.0,
        max_retries: int = 3,
        retry_delay: float = 1.0
    ):
        self.session = session
        self.api_key = api_key
        self.timeout = aiohttp.ClientTimeout(total=timeout_seconds)
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def _get_json_once(
        self, url: str, params: Optional[dict] = None, not_found: Type[RiotApiError] = RiotApiError
    ) -> Any:
        headers = {"X-Riot-Token": self.api_key}
        async with self.session.get(url, headers=headers, params=params, timeout=self.timeout) as response:
            status = response.status
            if status == 429:
                retry_after = response.headers.get('Retry-After')
                raise RiotRateLimitError(
                    status, url, "rate limited",
                    retry_after=float(retry_after) if retry_after else None
                )
            if status >= 500:
                raise RiotServerError(status, url)
            if status == 404:
                raise not_found(status, url, "not found")
            if status >= 400:
                raise RiotApiError(status, url, await response.text())
            try:
                return await response.json()
            except (aiohttp.ContentTypeError, ValueError) as e:
                raise RiotApiError(status, url, f"invalid JSON body ({e})") from e

    async def _get_json(
        self, url: str, params: Optional[dict] = None, not_found: Type[RiotApiError] = RiotApiError
    ) -> Any:
        return await retry_on_transient_error(
            lambda: self._get_json_once(url, params, not_found),
            f"GET {url}",
            retry_on=TRANSIENT_RIOT_ERRORS,
            max_retries=self.max_retries,
            initial_delay=self.retry_delay
        )

    # --- account / summoner lookups (used when a follow is created) ---

    async def get_puuid(self, game_name: str, tag_line: str, platform: str) -> str:
        region = regional_route(platform)
        url = (
            f"https://{region}.api.riotgames.com/riot/account/v1/accounts/by-riot-id/"
            f"{quote(game_name.strip(), safe='')}/{quote(tag_line.strip(), safe='')}"
        )
        data = await self._get_json(url, not_found=SummonerNotFoundError)
        puuid = data.get('puuid') if isinstance(data, dict) else None
        if not puuid:
            raise SummonerNotFoundError(404, url, "account has no puuid")
        return puuid

    async def get_summoner_id(self, puuid: str, platform: str) -> str:
        url = f"https://{platform.lower()}.api.riotgames.com/lol/summoner/v4/summoners/by-puuid/{puuid}"
        data = await self._get_json(url, not_found=SummonerNotFoundError)
        # summoner-v4 stopped returning 'id' for some accounts; the puuid still identifies them
        summoner_id = data.get('id') if isinstance(data, dict) else None
        return summoner_id or ""

    # --- match-v5 ---

    async def get_match_ids(self, puuid: str, platform: str, count: int = 1) -> list[str]:
        """Most recent match ids for a player, newest first."""
        region = regional_route(platform)
        url = f"https://{region}.api.riotgames.com/lol/match/v5/matches/by-puuid/{puuid}/ids"
        data = await self._get_json(url, params={'start': 0, 'count': count})
        if not isinstance(data, list) or not all(isinstance(i, str) for i in data):
            raise RiotApiError(200, url, "match id list expected")
        return data

    async def get_match(self, match_id: str, platform: str) -> MatchDetail:
        region = regional_route(platform)
        url = f"https://{region}.api.riotgames.com/lol/match/v5/matches/{match_id}"
        data = await self._get_json(url)
        try:
            return MatchDetail.from_json(data)
        except (ValueError, TypeError) as e:
            raise RiotApiError(200, url, f"undecodable match ({e})") from e
