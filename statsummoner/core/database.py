import aiosqlite
import os
import pathlib
import logging
from typing import Optional

logger = logging.getLogger(__name__)

class Database:
    def __init__(self, db_name: Optional[str] = None):
        # a single shared connection; aiosqlite serialises access on its own thread
        self.conn: Optional[aiosqlite.Connection] = None
        self.db_name = db_name or os.getenv('DB_NAME', 'stat_summoner.db')

    async def connect(self):
        """Open the SQLite file and bring the schema up to date."""
        self.conn = await aiosqlite.connect(self.db_name)
        # rows behave like mappings so callers can use column names
        self.conn.row_factory = aiosqlite.Row
        await self._run_migrations()
        logger.info("Database connected and initialised", extra={'db_name': self.db_name})

    async def close(self):
        if self.conn is not None:
            await self.conn.close()
            self.conn = None

    async def _execute(self, query, args=None, fetch=None):
        """Run one statement. INSERT / UPDATE / DELETE are committed and return the affected row count."""
        async with self.conn.cursor() as cursor:
            await cursor.execute(query, args or ())
            if fetch == 'one':
                return await cursor.fetchone()
            if fetch == 'all':
                return await cursor.fetchall()
            await self.conn.commit()
            return cursor.rowcount

    # --- Followed summoners ---

    async def upsert_followed_summoner(
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
    ) -> bool:
        """
        Store a follow for (puuid, guild_id).
        Returns True when a new row was created, False when an existing follow had its end time refreshed.
        """
        sql_insert = """
            INSERT OR IGNORE INTO followed_summoners
                (puuid, summoner_id, name, tag, region, last_match_id, time_end_follow, channel_id, guild_id)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        inserted = await self._execute(
            sql_insert,
            (puuid, summoner_id, name, tag, region, last_match_id, time_end_follow, channel_id, guild_id)
        )
        if inserted > 0:
            return True

        sql_refresh = "UPDATE followed_summoners SET time_end_follow = ? WHERE puuid = ? AND guild_id = ?"
        await self._execute(sql_refresh, (time_end_follow, puuid, guild_id))
        return False

    async def get_all_followed_summoners(self) -> list[dict]:
        """Every stored follow, undecoded."""
        sql = "SELECT * FROM followed_summoners"
        results = await self._execute(sql, fetch='all')
        return [dict(row) for row in results] if results else []

    async def get_followed_summoner(self, puuid: str, guild_id: int) -> Optional[dict]:
        sql = "SELECT * FROM followed_summoners WHERE puuid = ? AND guild_id = ?"
        result = await self._execute(sql, (puuid, guild_id), fetch='one')
        return dict(result) if result else None

    async def get_followed_summoners_for_guild(self, guild_id: int) -> list[dict]:
        sql = "SELECT * FROM followed_summoners WHERE guild_id = ? ORDER BY time_end_follow"
        results = await self._execute(sql, (guild_id,), fetch='all')
        return [dict(row) for row in results] if results else []

    async def update_last_match_id(self, puuid: str, guild_id: int, match_id: str) -> bool:
        sql = "UPDATE followed_summoners SET last_match_id = ? WHERE puuid = ? AND guild_id = ?"
        rows_affected = await self._execute(sql, (match_id, puuid, guild_id))
        return rows_affected > 0

    async def delete_followed_summoner(self, puuid: str, guild_id: int) -> bool:
        sql = "DELETE FROM followed_summoners WHERE puuid = ? AND guild_id = ?"
        rows_affected = await self._execute(sql, (puuid, guild_id))
        return rows_affected > 0

    async def _run_migrations(self):
        """
        Apply the numbered scripts in `statsummoner/migrations/versions` whose number is
        greater than the database's `user_version`, in order.
        """
        migrations_path = pathlib.Path(__file__).parent.parent / "migrations" / "versions"
        if not migrations_path.is_dir():
            logger.warning(f"Migrations directory not found, skipping: {migrations_path}")
            return

        async with self.conn.cursor() as cursor:
            await cursor.execute("PRAGMA user_version")
            current_version = (await cursor.fetchone())[0]
        logger.debug(f"Current schema version: {current_version}")

        try:
            migration_files = sorted(
                migrations_path.glob("*.sql"),
                key=lambda p: int(p.stem.split('_')[0])
            )
        except (ValueError, IndexError):
            logger.error("Migration file names must look like 'NNN_description.sql'.")
            raise

        latest_version = current_version
        for migration_file in migration_files:
            file_version = int(migration_file.stem.split('_')[0])
            if file_version <= current_version:
                continue
            try:
                logger.info(f"Applying migration v{file_version}: {migration_file.name}")
                await self.conn.executescript(migration_file.read_text(encoding='utf-8'))
                await self.conn.execute(f"PRAGMA user_version = {file_version}")
                await self.conn.commit()
                latest_version = file_version
            except Exception:
                logger.error(f"Migration failed: {migration_file.name}", exc_info=True)
                await self.conn.rollback()
                # refuse to start on a half-migrated schema
                raise

        if latest_version != current_version:
            logger.info(f"Schema migrated to version {latest_version}")
