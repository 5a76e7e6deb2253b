# statsummoner/modules/follow_games/services/follow_poller.py

import asyncio
import logging
import time
from typing import Awaitable, Callable, Optional, TypeVar
from statsummoner.modules.follow_games.models import FollowRecord, PassReport, RecordOutcome
from statsummoner.modules.follow_games.services.follow_service import FollowService
from statsummoner.modules.follow_games.services.match_summary import build_match_summary
from statsummoner.modules.follow_games.services.notification_service import NotificationService
from statsummoner.modules.follow_games.services.riot_service import RiotClient

logger = logging.getLogger(__name__)

T = TypeVar('T')


class FollowPoller:
    """
    Periodically walks every follow record: expired follows are deleted, the others are checked
    for a new match and, when there is one, a summary is posted to the follow channel.

    Errors are contained per record; a failing record keeps its stored state and is retried on the next pass.
    """

    def __init__(
        self,
        follow_service: FollowService,
        riot_client: RiotClient,
        notification_service: NotificationService,
        interval_seconds: float = 120,
        concurrent_tasks: int = 5,
        call_timeout: float = 10.0,
        clock: Optional[Callable[[], int]] = None
    ):
        self.follow_service = follow_service
        self.riot_client = riot_client
        self.notification_service = notification_service
        self.interval_seconds = interval_seconds
        self.concurrent_tasks = max(1, concurrent_tasks)
        self.call_timeout = call_timeout
        self.clock = clock or (lambda: int(time.time()))
        self.task: Optional[asyncio.Task] = None
        self.pass_lock = asyncio.Lock()

    async def _call(self, awaitable: Awaitable[T]) -> T:
        return await asyncio.wait_for(awaitable, timeout=self.call_timeout)

    # ----------------------------------------------------------------
    # Per record
    # ----------------------------------------------------------------

    async def check_new_match(self, record: FollowRecord) -> Optional[str]:
        """
        Latest match id for the player if it differs from the stored one, otherwise None.
        Ids are compared as plain strings.
        """
        match_ids = await self._call(self.riot_client.get_match_ids(record.puuid, record.region, count=1))
        if not match_ids:
            return None
        latest = match_ids[0]
        return None if latest == record.last_match_id else latest

    async def process_record(self, record: FollowRecord, now: int) -> RecordOutcome:
        log_context = {
            'puuid': record.puuid,
            'guild_id': record.guild_id,
            'channel_id': record.channel_id,
            'summoner': record.riot_id,
        }
        try:
            if record.is_expired(now):
                await self._call(self.follow_service.delete_follow(record))
                logger.info("Follow expired, record deleted", extra=log_context)
                return RecordOutcome.EXPIRED

            new_match_id = await self.check_new_match(record)
            if new_match_id is None:
                return RecordOutcome.UNCHANGED

            log_context['match_id'] = new_match_id
            logger.info("New match found for followed summoner", extra=log_context)

            detail = await self._call(self.riot_client.get_match(new_match_id, record.region))
            summary = build_match_summary(detail, record.puuid, record.summoner_id, record.name)

            sent = False
            if summary is None:
                logger.warning("Followed summoner is not in the match, no notification", extra=log_context)
            else:
                result = await self._call(
                    self.notification_service.send_match_notification(record.channel_id, summary)
                )
                sent = result.sent
                if not sent:
                    logger.warning("Match notification not delivered", extra={**log_context, 'error': result.error})

            # stored even when the send failed: a notification is never retried
            await self._call(self.follow_service.update_last_match(record, new_match_id))
            return RecordOutcome.NOTIFIED if sent else RecordOutcome.UPDATED

        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error("Processing followed summoner failed, will retry next pass", extra=log_context, exc_info=True)
            return RecordOutcome.FAILED

    # ----------------------------------------------------------------
    # One pass
    # ----------------------------------------------------------------

    async def run_pass(self) -> PassReport:
        """Process every stored follow once, with at most `concurrent_tasks` records in flight."""
        report = PassReport()
        try:
            records = await self._call(self.follow_service.get_all_followed_summoners())
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.error("Could not load follow records, skipping this pass", exc_info=True)
            return report

        if not records:
            logger.debug("No followed summoners, nothing to check.")
            return report

        now = self.clock()
        semaphore = asyncio.Semaphore(self.concurrent_tasks)

        async def guarded(record: FollowRecord) -> RecordOutcome:
            async with semaphore:
                return await self.process_record(record, now)

        results = await asyncio.gather(*(guarded(r) for r in records), return_exceptions=True)
        for record, res in zip(records, results):
            if isinstance(res, BaseException):
                logger.error(
                    f"Unhandled error while processing a follow record: {res!r}",
                    extra={'puuid': record.puuid, 'guild_id': record.guild_id}
                )
                report.add(RecordOutcome.FAILED)
            else:
                report.add(res)

        logger.info(
            "Follow pass finished",
            extra={
                'total': report.total, 'expired': report.expired, 'unchanged': report.unchanged,
                'notified': report.notified, 'updated': report.updated, 'failed': report.failed
            }
        )
        return report

    async def run_tick(self) -> Optional[PassReport]:
        """Run a pass unless one is already running. Returns None when the tick was skipped."""
        if self.pass_lock.locked():
            logger.warning("Previous follow pass still running, skipping this tick.")
            return None
        async with self.pass_lock:
            return await self.run_pass()

    # ----------------------------------------------------------------
    # Background loop
    # ----------------------------------------------------------------

    async def run_forever(self, wait_until_ready: Optional[Callable[[], Awaitable[None]]] = None):
        """Fixed-rate loop: one tick every `interval_seconds`; ticks missed by a long pass are dropped."""
        if wait_until_ready is not None:
            await wait_until_ready()
        logger.info(f"Follow polling loop started, checking every {self.interval_seconds}s.")

        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            try:
                await self.run_tick()
            except asyncio.CancelledError:
                logger.info("Follow polling loop cancelled.")
                raise
            except Exception:
                logger.error("Unexpected error in follow polling loop", exc_info=True)

            elapsed = loop.time() - started
            if elapsed > self.interval_seconds:
                logger.warning(
                    f"Follow pass took {elapsed:.1f}s, longer than the {self.interval_seconds}s interval; "
                    f"{int(elapsed // self.interval_seconds)} tick(s) dropped."
                )
            await asyncio.sleep(self.interval_seconds - (elapsed % self.interval_seconds))

    def start(self, wait_until_ready: Optional[Callable[[], Awaitable[None]]] = None):
        if self.task and not self.task.done():
            logger.warning("Follow polling loop is already running.")
            return
        self.task = asyncio.get_running_loop().create_task(self.run_forever(wait_until_ready))

    def stop(self):
        if self.task and not self.task.done():
            self.task.cancel()
            logger.info("Follow polling loop stopped.")
