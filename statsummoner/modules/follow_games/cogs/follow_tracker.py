# statsummoner/modules/follow_games/cogs/follow_tracker.py

import discord
from discord import app_commands
from discord.ext import commands
import logging
import time
from typing import TYPE_CHECKING
from statsummoner.core.utils import env_number
from statsummoner.modules.follow_games.models import FollowResult, REGION_CHOICES
from statsummoner.modules.follow_games.services.follow_service import FollowService, format_time_remaining
from statsummoner.modules.follow_games.services.riot_service import RiotApiError, RiotClient, SummonerNotFoundError

if TYPE_CHECKING:
    from statsummoner.bot import StatSummonerBot

logger = logging.getLogger(__name__)

REGION_APP_CHOICES = [app_commands.Choice(name=label, value=platform) for label, platform in REGION_CHOICES.items()]


class FollowTracker(commands.Cog):
    """
    Slash commands to follow a League of Legends player from a channel, and to list or drop follows.
    The polling itself lives in FollowPoller, started by the bot once it is connected.
    """

    def __init__(self, bot: "StatSummonerBot"):
        self.bot = bot
        self.follow_service: FollowService = bot.follow_service
        self.riot_client: RiotClient = bot.riot_client
        self.max_hours = env_number('FOLLOW_MAX_HOURS', 48)

    async def _reply_riot_error(self, interaction: discord.Interaction, error: RiotApiError, log_context: dict):
        if isinstance(error, SummonerNotFoundError):
            await interaction.followup.send(
                "❌ **Player not found**: check the region, game name and tag line, then try again.",
                ephemeral=True
            )
            return
        logger.warning("Riot API call failed during a follow command", extra={**log_context, 'status': error.status})
        await interaction.followup.send(
            "⚙️ The Riot API is not answering right now, please try again in a moment.", ephemeral=True
        )

    @app_commands.command(name="followgames", description="Post a summary of every game this player finishes")
    @app_commands.describe(
        region="Region of the account",
        game_name="Riot ID game name (e.g. Faker)",
        tag_line="Riot ID tag line, without '#' (e.g. KR1)",
        hours="How long to follow the player, in hours"
    )
    @app_commands.choices(region=REGION_APP_CHOICES)
    async def followgames(
        self,
        interaction: discord.Interaction,
        region: app_commands.Choice[str],
        game_name: str,
        tag_line: str,
        hours: int
    ):
        await interaction.response.defer(ephemeral=True)

        if hours < 1 or hours > self.max_hours:
            await interaction.followup.send(f"❌ Please enter a duration between 1 and {self.max_hours} hours.", ephemeral=True)
            return

        tag_line = tag_line.lstrip('#')
        platform = region.value
        guild_id = interaction.guild_id or 0
        log_context = {
            'user_id': interaction.user.id,
            'guild_id': guild_id,
            'channel_id': interaction.channel_id,
            'riot_id': f"{game_name}#{tag_line}",
            'region': platform
        }

        try:
            puuid = await self.riot_client.get_puuid(game_name, tag_line, platform)
            summoner_id = await self.riot_client.get_summoner_id(puuid, platform)
            match_ids = await self.riot_client.get_match_ids(puuid, platform, count=1)

            result = await self.follow_service.follow_summoner(
                puuid=puuid,
                summoner_id=summoner_id,
                name=game_name,
                tag=tag_line,
                region=platform,
                last_match_id=match_ids[0] if match_ids else "",
                time_end_follow=int(time.time()) + hours * 3600,
                channel_id=interaction.channel_id,
                guild_id=guild_id
            )
        except RiotApiError as e:
            await self._reply_riot_error(interaction, e, log_context)
            return
        except Exception:
            logger.error("/followgames failed", extra=log_context, exc_info=True)
            await interaction.followup.send("⚙️ **Something went wrong**, please try again later.", ephemeral=True)
            return

        logger.info("User followed a summoner", extra={**log_context, 'result': result.name, 'hours': hours})
        if result == FollowResult.CREATED:
            await interaction.followup.send(
                f"✅ Now following **{game_name}#{tag_line}** for {hours}h. New games will be posted in this channel.",
                ephemeral=True
            )
        else:
            await interaction.followup.send(
                f"🔁 **{game_name}#{tag_line}** was already followed here; the follow now ends in {hours}h.",
                ephemeral=True
            )

    @app_commands.command(name="unfollowgames", description="Stop following a player in this server")
    @app_commands.choices(region=REGION_APP_CHOICES)
    async def unfollowgames(
        self,
        interaction: discord.Interaction,
        region: app_commands.Choice[str],
        game_name: str,
        tag_line: str
    ):
        await interaction.response.defer(ephemeral=True)
        tag_line = tag_line.lstrip('#')
        guild_id = interaction.guild_id or 0
        log_context = {'user_id': interaction.user.id, 'guild_id': guild_id, 'riot_id': f"{game_name}#{tag_line}"}

        try:
            puuid = await self.riot_client.get_puuid(game_name, tag_line, region.value)
            removed = await self.follow_service.unfollow_summoner(puuid, guild_id)
        except RiotApiError as e:
            await self._reply_riot_error(interaction, e, log_context)
            return
        except Exception:
            logger.error("/unfollowgames failed", extra=log_context, exc_info=True)
            await interaction.followup.send("⚙️ **Something went wrong**, please try again later.", ephemeral=True)
            return

        logger.info("User unfollowed a summoner", extra={**log_context, 'removed': removed})
        if removed:
            await interaction.followup.send(f"✅ **{game_name}#{tag_line}** is no longer followed.", ephemeral=True)
        else:
            await interaction.followup.send(f"🤔 **{game_name}#{tag_line}** was not followed in this server.", ephemeral=True)

    @app_commands.command(name="whoisfollowed", description="List the players followed in this server")
    async def whoisfollowed(self, interaction: discord.Interaction):
        await interaction.response.defer(ephemeral=True)
        guild_id = interaction.guild_id or 0
        try:
            follows = await self.follow_service.get_guild_follows(guild_id)
        except Exception:
            logger.error("/whoisfollowed failed", extra={'guild_id': guild_id}, exc_info=True)
            await interaction.followup.send("⚙️ **Something went wrong**, please try again later.", ephemeral=True)
            return

        embed = discord.Embed(title="Tracked Summoners", color=discord.Color.purple())
        if not follows:
            embed.description = "No summoners are currently being followed."
        else:
            now = int(time.time())
            # embeds hold at most 25 fields
            for record in follows[:25]:
                embed.add_field(
                    name=record.riot_id,
                    value=f"Follow ends: {format_time_remaining(record.time_end_follow - now)} · <#{record.channel_id}>",
                    inline=False
                )
        await interaction.followup.send(embed=embed, ephemeral=True)


async def setup(bot: "StatSummonerBot"):
    await bot.add_cog(FollowTracker(bot))
