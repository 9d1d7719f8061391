"""
Post-commit hand-off of contract notifications.

Services schedule events while they work; nothing is sent until flush()
runs, which the routers do as a background task after the response (and
therefore after the transaction) is done. Delivery failures are logged and
never reach the caller.
"""

import logging

from arq import create_pool

from ..config import NOTIFICATIONS_ENABLED

logger = logging.getLogger(__name__)

NOTIFY_TASK_NAME = "notify_contract_event_task"


class NotificationDispatcher:
    """Collects (event, contract_id) pairs and enqueues them on the ARQ worker"""

    def __init__(self):
        self.pending: list[tuple[str, str]] = []

    def schedule(self, event: str, contract_id: str) -> None:
        self.pending.append((event, contract_id))

    def discard(self) -> None:
        """Drop everything scheduled so far (the transaction was rolled back)"""
        self.pending.clear()

    async def deliver(self, event: str, contract_id: str) -> None:
        from ..worker import get_redis_settings

        pool = await create_pool(get_redis_settings())
        try:
            job = await pool.enqueue_job(NOTIFY_TASK_NAME, contract_id, event)
            logger.info(f"📋 Contract notification queued: {event} {contract_id} (job {job.job_id if job else '-'})")
        finally:
            await pool.close()

    async def flush(self) -> None:
        events, self.pending = self.pending, []
        if not events:
            return
        if not NOTIFICATIONS_ENABLED:
            logger.debug(f"ℹ️ Notifications disabled, dropping {len(events)} event(s)")
            return

        for event, contract_id in events:
            try:
                await self.deliver(event, contract_id)
            except Exception as e:
                logger.error(f"❌ Failed to queue contract notification {event} {contract_id}: {e}")
