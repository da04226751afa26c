# chat/unread.py
import asyncio
import logging

logger = logging.getLogger(__name__)


class UnreadReconciler:
    """
    Turns a stream of "your unread count may have changed" signals into
    recounts. Signals that arrive while a recount is in flight are folded into
    a single follow-up recount, so a burst of messages costs at most two
    queries and the last published count always reflects the last signal.
    """

    def __init__(self, recount, publish):
        self.recount = recount
        self.publish = publish
        self._dirty = asyncio.Event()
        self._task = None
        self.last_count = None

    def start(self):
        self._task = asyncio.create_task(self._run())
        self.invalidate()

    def invalidate(self):
        self._dirty.set()

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None

    async def _run(self):
        while True:
            await self._dirty.wait()
            self._dirty.clear()
            try:
                count = await self.recount()
            except Exception as e:
                logger.error(f"[UnreadReconciler] Recount failed: {e}", exc_info=True)
                continue
            if count == self.last_count:
                continue
            try:
                await self.publish(count)
            except Exception as e:
                logger.error(f"[UnreadReconciler] Publishing count {count} failed: {e}", exc_info=True)
                continue
            self.last_count = count
