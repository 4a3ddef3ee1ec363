"""
Bounded-concurrency runner shared by the per-slide stages
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass
class BoundedRunResult:
    """Results keyed by ordinal, plus the first failure or a cancellation flag"""
    results: Dict[int, Any] = field(default_factory=dict)
    error: Optional[BaseException] = None
    cancelled: bool = False

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.cancelled


async def run_bounded(items: Iterable[Tuple[int, Any]],
                      worker: Callable[[Any], Awaitable[Any]],
                      max_concurrency: int = 4,
                      cancel_event: Optional[asyncio.Event] = None,
                      on_result: Optional[Callable[[int, Any], None]] = None) -> BoundedRunResult:
    """Run ``worker`` over ``(ordinal, item)`` pairs, at most ``max_concurrency`` at a time.

    Cancellation and failure are checked before each dispatch: once either
    is observed nothing new starts, while sub-operations already in flight
    run to completion and their results are kept.
    """
    if max_concurrency < 1:
        raise ValueError("max_concurrency must be at least 1")

    semaphore = asyncio.Semaphore(max_concurrency)
    outcome = BoundedRunResult()
    tasks = []

    async def _run(ordinal: int, item: Any):
        try:
            result = await worker(item)
        except Exception as e:
            logger.warning(f"Item {ordinal} failed: {e}")
            if outcome.error is None:
                outcome.error = e
            return
        finally:
            semaphore.release()
        outcome.results[ordinal] = result
        if on_result is not None:
            on_result(ordinal, result)

    for ordinal, item in items:
        await semaphore.acquire()
        if cancel_event is not None and cancel_event.is_set():
            semaphore.release()
            outcome.cancelled = True
            break
        if outcome.error is not None:
            semaphore.release()
            break
        tasks.append(asyncio.create_task(_run(ordinal, item)))
        # Let the task start before deciding on the next dispatch
        await asyncio.sleep(0)

    if tasks:
        await asyncio.gather(*tasks)
    return outcome
