"""
Single-flight, FIFO writer in front of the shared ledger table.

One ``LedgerWriter`` exists per process. It owns a queue of pending rows
and at most one drain task; rows are appended strictly in submission order
and a failed append only fails its own future.

    idle ──submit──▶ draining ──queue empty──▶ idle
"""

import asyncio
import logging
from collections import deque

from backend.errors import LedgerAppendError
from backend.ledger.sheets import AppendOnlyTable
from backend.models import LedgerRow

logger = logging.getLogger(__name__)


class LedgerWriter:
    def __init__(self, table: AppendOnlyTable):
        self.table = table
        self._queue: deque[tuple[LedgerRow, asyncio.Future]] = deque()
        self._worker: asyncio.Task | None = None
        self._closed = False

    @property
    def state(self) -> str:
        return "draining" if self._worker is not None and not self._worker.done() else "idle"

    @property
    def pending(self) -> int:
        return len(self._queue)

    @property
    def closed(self) -> bool:
        return self._closed

    def submit(self, row: LedgerRow) -> asyncio.Future:
        """Queue *row* and return a future resolved once it is appended."""
        if self._closed:
            raise LedgerAppendError("ledger writer is closed")

        loop = asyncio.get_running_loop()
        future = loop.create_future()
        self._queue.append((row, future))
        logger.debug("Ledger row queued (%d pending, %s)", len(self._queue), self.state)

        if self.state == "idle":
            self._worker = loop.create_task(self._drain())
        return future

    async def append(self, row: LedgerRow) -> None:
        await self.submit(row)

    async def aclose(self) -> None:
        """Stop accepting rows and wait for the queued ones to be written."""
        self._closed = True
        if self._worker is not None and not self._worker.done():
            logger.info("Waiting for %d queued ledger row(s) before shutdown", len(self._queue) + 1)
            await self._worker
        close = getattr(self.table, "aclose", None)
        if close is not None:
            await close()

    async def _drain(self) -> None:
        future: asyncio.Future | None = None
        try:
            while self._queue:
                row, future = self._queue.popleft()
                if future.cancelled():
                    continue
                try:
                    await self.table.append_row(row.values())
                except Exception as e:
                    logger.exception("Ledger append failed for %r", row.name)
                    if not isinstance(e, LedgerAppendError):
                        error = LedgerAppendError(f"Ledger append failed: {e}")
                        error.__cause__ = e
                    else:
                        error = e
                    if not future.done():
                        future.set_exception(error)
                else:
                    if not future.done():
                        future.set_result(None)
        except asyncio.CancelledError:
            self._fail_outstanding(future)
            raise
        finally:
            self._worker = None

    def _fail_outstanding(self, current: asyncio.Future | None) -> None:
        """Fail the row being written and every queued row after it."""
        futures = [current] if current is not None else []
        futures.extend(f for _, f in self._queue)
        self._queue.clear()
        failed = 0
        for future in futures:
            if not future.done():
                future.set_exception(LedgerAppendError("ledger writer was cancelled"))
                failed += 1
        logger.warning("Ledger drain cancelled; %d row(s) not written", failed)
