"""
Concurrent batching for live dispatch.
Fan-out then join-all windows with per-operation failure isolation.
"""
import asyncio
import logging
import typing as t

from .receipts import Outcome, classify, format_outcome

logger = logging.getLogger(__name__)

BatchWindow = t.List["asyncio.Future[t.Any]"]


class ConcurrentBatcher:
    """
    Collects in-flight operations and waits for them in groups of ``threshold``.

    Usage:
        batcher = ConcurrentBatcher(threshold=100)
        window = []
        for request in requests:
            window = await batcher.push(window, dispatcher.submit(request))
        window = await batcher.flush(window)

    ``push`` and ``flush`` return the window to keep using; a flushed window is
    replaced by a new list, never cleared in place.
    """

    def __init__(self, threshold: int) -> None:
        if threshold < 1:
            raise ValueError("threshold must be at least 1")
        self.threshold = threshold
        self.flushes = 0
        self.outcomes: t.List[Outcome] = []

    async def push(
        self, window: BatchWindow, operation: t.Optional[t.Awaitable[t.Any]] = None
    ) -> BatchWindow:
        """
        Start ``operation`` and add it to the window; flush once the window is full.

        ``operation=None`` only checks the threshold.
        """
        if operation is not None:
            window.append(asyncio.ensure_future(operation))
        if len(window) >= self.threshold:
            return await self.flush(window)
        return window

    async def flush(self, window: BatchWindow) -> BatchWindow:
        """
        Wait for every operation in the window and report each outcome.

        A failing operation becomes a Failure outcome; its siblings still run
        to completion.
        """
        if not window:
            return []
        try:
            results = await asyncio.gather(*window, return_exceptions=True)
        except Exception:
            logger.exception("Batch of %d operations failed to join", len(window))
            for task in window:
                if not task.done():
                    task.cancel()
            # mark failures as retrieved
            await asyncio.wait(window)
            for task in window:
                if not task.cancelled():
                    task.exception()
            return []

        outcomes = [classify(result) for result in results]
        for outcome in outcomes:
            logger.info(format_outcome(outcome))
        self.outcomes.extend(outcomes)
        self.flushes += 1
        logger.info("send successful %d", len(outcomes))
        return []
