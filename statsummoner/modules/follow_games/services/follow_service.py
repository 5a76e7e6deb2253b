# statsummoner/modules/follow_games/services/follow_service.py

import logging
from typing import Optional
from statsummoner.core.database import Database
from statsummoner.modules.follow_games.models import FollowRecord, FollowResult

logger = logging.getLogger(__name__)


def format_time_remaining(seconds: int) -> str:
    """Human wording for the time left on a follow, e.g. 'in 1 day and 3 hours'."""
    if seconds <= 0:
        return "Follow ended"

    days, rest = divmod(seconds, 86400)
    hours, rest = divmod(rest, 3600)
    minutes = rest // 60

    def plural(n: int, unit: str) -> str:
        return f"{n} {unit}" if n == 1 else f"{n} {unit}s"

    if days > 0:
        if hours > 0:
            return f"in {plural(days, 'day')} and {plural(hours, 'hour')}"
        return f"in {plural(days, 'day')}"
    if hours > 0:
        return f"in {plural(hours, 'hour')}"
    if minutes > 0:
        return f"in {plural(minutes, 'minute')}"
    return "less than a minute"


class FollowService:
    """
    Reads and writes follow records. The only place that turns stored rows into FollowRecord objects.
    """

    def __init__(self, db: Database):
        self.db = db

    async def follow_summoner(
        self,
        puuid: str,
        summoner_id: str,
        name: str,
        tag: str,
        region: str,
        last_match_id: str,
        time_end_follow: int,
        channel_id: int,
        guild_id: int
    ) -> FollowResult:
        """
        Follow a player from a guild. Following the same player again from the same guild only
        moves the end time; another guild gets its own record.
        """
        created = await self.db.upsert_followed_summoner(
            puuid, summoner_id, name, tag, region, last_match_id, time_end_follow, channel_id, guild_id
        )
        result = FollowResult.CREATED if created else FollowResult.REFRESHED
        logger.info(
            "Follow stored",
            extra={'puuid': puuid, 'guild_id': guild_id, 'channel_id': channel_id, 'result': result.name}
        )
        return result

    async def unfollow_summoner(self, puuid: str, guild_id: int) -> bool:
        return await self.db.delete_followed_summoner(puuid, guild_id)

    async def get_follow(self, puuid: str, guild_id: int) -> Optional[FollowRecord]:
        row = await self.db.get_followed_summoner(puuid, guild_id)
        return FollowRecord.from_row(row) if row else None

    async def get_all_followed_summoners(self) -> list[FollowRecord]:
        """Every decodable follow record. Rows that fail to decode are logged and skipped."""
        rows = await self.db.get_all_followed_summoners()
        return self._decode_rows(rows)

    async def get_guild_follows(self, guild_id: int) -> list[FollowRecord]:
        rows = await self.db.get_followed_summoners_for_guild(guild_id)
        return self._decode_rows(rows)

    def _decode_rows(self, rows: list[dict]) -> list[FollowRecord]:
        records = []
        for row in rows:
            try:
                records.append(FollowRecord.from_row(row))
            except (KeyError, ValueError, TypeError) as e:
                logger.warning(
                    "Skipping undecodable follow record",
                    extra={'row_id': row.get('id'), 'error': str(e)}
                )
        return records

    async def update_last_match(self, record: FollowRecord, match_id: str) -> bool:
        return await self.db.update_last_match_id(record.puuid, record.guild_id, match_id)

    async def delete_follow(self, record: FollowRecord) -> bool:
        return await self.db.delete_followed_summoner(record.puuid, record.guild_id)
