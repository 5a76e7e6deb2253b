import discord
from discord.ext import commands
import os
import asyncio
import aiohttp
import pathlib
from dotenv import load_dotenv, find_dotenv
from statsummoner.core.database import Database
from statsummoner.core.utils import env_number
from statsummoner.modules.follow_games.services.follow_service import FollowService
from statsummoner.modules.follow_games.services.follow_poller import FollowPoller
from statsummoner.modules.follow_games.services.notification_service import NotificationService
from statsummoner.modules.follow_games.services.riot_service import RiotClient
import logging
from statsummoner.core.logging_setup import setup_logging

load_dotenv(find_dotenv())
TOKEN = os.getenv('DISCORD_TOKEN')
RIOT_API_KEY = os.getenv('RIOT_API_KEY')

logger = logging.getLogger(__name__)

class StatSummonerBot(commands.Bot):
    def __init__(self, riot_api_key: str):
        GUILD_ID = os.getenv("GUILD_ID")
        if GUILD_ID:
            self.guild_ids = [int(gid.strip()) for gid in GUILD_ID.split(',') if gid.strip()]
            logger.info(f"Loaded {len(self.guild_ids)} target guild id(s).")
        else:
            self.guild_ids = []
            logger.info("GUILD_ID not set, commands will be synced globally.")

        self.riot_api_key = riot_api_key
        self.call_timeout = env_number('FOLLOW_CALL_TIMEOUT_SECONDS', 10.0, float)

        # slash commands only, no privileged intents needed
        super().__init__(command_prefix="!", intents=discord.Intents.default())

        self.db: Database | None = None
        self.http_session: aiohttp.ClientSession | None = None
        self.riot_client: RiotClient | None = None
        self.follow_service: FollowService | None = None
        self.notification_service: NotificationService | None = None
        self.follow_poller: FollowPoller | None = None

    async def setup_hook(self) -> None:
        logger.info("--- 🚀 1. Initialising core services ---")
        self.db = Database()
        await self.db.connect()

        self.http_session = aiohttp.ClientSession()
        self.riot_client = RiotClient(self.http_session, self.riot_api_key, timeout_seconds=self.call_timeout)
        self.follow_service = FollowService(self.db)
        self.notification_service = NotificationService(self)
        self.follow_poller = FollowPoller(
            self.follow_service,
            self.riot_client,
            self.notification_service,
            interval_seconds=env_number('FOLLOW_CHECK_INTERVAL_SECONDS', 120.0, float),
            concurrent_tasks=env_number('FOLLOW_CONCURRENT_TASKS', 5),
            # a notification can include Discord retries, so the budget covers a full attempt cycle
            call_timeout=self.call_timeout * 3
        )
        logger.info("✅ Core services ready.")

        logger.info("--- 🧩 2. Loading cogs ---")
        await self.load_all_cogs()

        logger.info("--- 🛰️ 3. Syncing application commands ---")
        if self.guild_ids:
            for guild_id in self.guild_ids:
                guild = discord.Object(id=guild_id)
                self.tree.copy_global_to(guild=guild)
                await self.tree.sync(guild=guild)
                logger.info(f"✅ Commands synced to guild: {guild_id}")
        else:
            await self.tree.sync()
            logger.info("✅ Commands synced globally.")

        self.start_background_tasks()

    async def on_ready(self):
        logger.info(f"--- ✅ Connected to Discord as {self.user} (ID: {self.user.id}) ---")

    def start_background_tasks(self):
        self.follow_poller.start(wait_until_ready=self.wait_until_ready)
        logger.info("  - [started] follow polling loop.")

    async def close(self):
        """Disconnect from Discord first, then release our own resources."""
        logger.info("Shutting down bot and releasing resources...")
        await super().close()

        if self.follow_poller:
            self.follow_poller.stop()
        if self.http_session and not self.http_session.closed:
            await self.http_session.close()
        if self.db:
            await self.db.close()
            logger.info("Database connection closed.")

    async def load_all_cogs(self):
        """Load every `cogs/*.py` module found under statsummoner/modules."""
        package_root = pathlib.Path(__file__).parent
        modules_root = package_root / "modules"

        for path in modules_root.rglob("cogs/*.py"):
            if path.name == "__init__.py":
                continue
            module_path = ".".join(path.relative_to(package_root.parent).parts).removesuffix(".py")
            try:
                await self.load_extension(module_path)
                logger.info(f"✅ Loaded: {module_path}")
            except Exception:
                logger.error(f"❌ Failed to load {module_path}", exc_info=True)


async def main():
    setup_logging()

    if not TOKEN:
        logger.critical("DISCORD_TOKEN is not set. The bot cannot start.")
        return
    if not RIOT_API_KEY:
        logger.critical("RIOT_API_KEY is not set. The bot cannot start.")
        return

    bot = StatSummonerBot(RIOT_API_KEY)
    try:
        await bot.start(TOKEN)
    except discord.errors.LoginFailure:
        logger.critical("DISCORD_TOKEN is invalid.")
    except Exception:
        logger.critical("Fatal error while running the bot", exc_info=True)
    finally:
        if not bot.is_closed():
            await bot.close()


def run():
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        logging.getLogger(__name__).info("Exited cleanly.")


if __name__ == "__main__":
    run()
