# statsummoner/modules/follow_games/services/notification_service.py

import discord
import logging
from statsummoner.core.utils import retry_on_transient_error
from statsummoner.modules.follow_games.models import MatchSummary, NotificationResult, PlayerLine
from statsummoner.modules.follow_games.services.match_summary import format_gold_k

logger = logging.getLogger(__name__)

ROLE_LABELS = {
    "TOP": "🔼 TOP",
    "JUNGLE": "🌲 JUNGLE",
    "MIDDLE": "🛣️ MIDDLE",
    "BOTTOM": "🔽 BOTTOM",
    "UTILITY": "🛡️ SUPPORT",
}

VICTORY_THUMBNAIL = "https://i.postimg.cc/CxwjnWVk/pngegg.png"
DEFEAT_THUMBNAIL = "https://i.postimg.cc/XJBF0WwS/pngwing-com.png"


def _player_line_text(line: PlayerLine) -> str:
    return (
        f"{line.champion_name} **{line.summoner_name}**\n"
        f"K/D/A: **{line.kills}/{line.deaths}/{line.assists}** | CS: **{line.total_farm}** | "
        f"Gold: {format_gold_k(line.gold_earned)} | Vision: {line.vision_score}"
    )


def build_match_embed(summary: MatchSummary) -> discord.Embed:
    result_emoji = "🏆" if summary.is_victory else "❌"
    embed = discord.Embed(
        title=(
            f"**{summary.player_name}** - **{summary.game_mode}: "
            f"{summary.game_result} {result_emoji} - {summary.game_duration}**"
        ),
        color=discord.Color.green() if summary.is_victory else discord.Color.red()
    )
    embed.set_thumbnail(url=VICTORY_THUMBNAIL if summary.is_victory else DEFEAT_THUMBNAIL)
    for matchup in summary.matchups:
        embed.add_field(
            name=f"**{ROLE_LABELS.get(matchup.role, matchup.role)}**",
            value=f"{_player_line_text(matchup.team)}\n{_player_line_text(matchup.enemy)}",
            inline=False
        )
    embed.set_footer(text=f"Match {summary.match_id}")
    return embed


class NotificationService:
    """
    Posts match summaries to the channel a follow was created in.
    Failures are reported through the returned NotificationResult instead of being raised.
    """

    def __init__(self, bot: discord.Client, retry_delay: float = 2.0):
        self.bot = bot
        self.retry_delay = retry_delay

    async def _resolve_channel(self, channel_id: int):
        return self.bot.get_channel(channel_id) or await retry_on_transient_error(
            lambda: self.bot.fetch_channel(channel_id),
            f"fetch channel {channel_id}",
            initial_delay=self.retry_delay
        )

    async def send_match_notification(self, channel_id: int, summary: MatchSummary) -> NotificationResult:
        log_context = {'channel_id': channel_id, 'match_id': summary.match_id, 'player_name': summary.player_name}
        try:
            channel = await self._resolve_channel(channel_id)
            if not isinstance(channel, discord.abc.Messageable):
                logger.warning(
                    "Follow channel cannot receive messages", extra={**log_context, 'channel_type': type(channel).__name__}
                )
                return NotificationResult(sent=False, error="channel not messageable")
            embed = build_match_embed(summary)
            await retry_on_transient_error(
                lambda: channel.send(embed=embed),
                f"send match notification to channel {channel_id}",
                initial_delay=self.retry_delay
            )
            logger.info("Match notification sent", extra=log_context)
            return NotificationResult(sent=True)

        except discord.Forbidden:
            logger.warning("Missing permission to post in the follow channel", extra=log_context)
            return NotificationResult(sent=False, error="forbidden")
        except discord.NotFound:
            logger.warning("Follow channel no longer exists", extra=log_context)
            return NotificationResult(sent=False, error="channel not found")
        except discord.HTTPException as e:
            logger.error("Discord rejected the match notification", extra=log_context, exc_info=True)
            return NotificationResult(sent=False, error=f"http {e.status}")
