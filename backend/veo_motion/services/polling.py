from __future__ import annotations
"""Operation poll loop.

Re-queries a long-running operation at a fixed interval until it reports
done. Queries are strictly sequential. The loop is bounded by an optional
deadline and by a cooperative CancelToken that is raced against every wait
and every in-flight query.
"""

import asyncio
import logging
from typing import Awaitable, Callable, TypeVar

from veo_motion.errors import PollError, PollErrorKind
from veo_motion.models.generation import Operation

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_MAX_TRANSIENT_ERRORS = 3

RefreshFn = Callable[[Operation], Awaitable[Operation]]


class CancelToken:
    """Cooperative cancellation signal shared by a workflow run."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    async def wait(self) -> None:
        await self._event.wait()

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise PollError(PollErrorKind.CANCELLED, "Generation cancelled.")


async def run_cancellable(
    aw: Awaitable[T],
    cancel: CancelToken | None,
    timeout: float | None = None,
) -> T:
    """Await ``aw`` unless ``cancel`` fires or ``timeout`` passes first.

    The losing side is cancelled. Raises PollError(CANCELLED) or
    PollError(TIMED_OUT); exceptions raised by ``aw`` itself pass through.
    """
    if cancel is None and timeout is None:
        return await aw
    if cancel is not None and cancel.cancelled:
        if asyncio.iscoroutine(aw):
            aw.close()
        cancel.raise_if_cancelled()

    task = asyncio.ensure_future(aw)
    waiter = asyncio.ensure_future(cancel.wait()) if cancel is not None else None
    futures = {task} if waiter is None else {task, waiter}
    try:
        done, _ = await asyncio.wait(futures, timeout=timeout, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for fut in futures:
            if not fut.done():
                fut.cancel()

    if waiter is not None and waiter in done:
        if task.done() and not task.cancelled():
            task.exception()  # mark retrieved; the result is discarded
        raise PollError(PollErrorKind.CANCELLED, "Generation cancelled.")
    if task not in done:
        raise PollError(PollErrorKind.TIMED_OUT, "Timed out waiting for the generation service.")
    return task.result()


async def await_completion(
    operation: Operation,
    refresh: RefreshFn,
    *,
    interval: float = DEFAULT_POLL_INTERVAL,
    timeout: float | None = None,
    cancel: CancelToken | None = None,
    max_transient_errors: int = DEFAULT_MAX_TRANSIENT_ERRORS,
) -> Operation:
    """Poll until ``operation`` is done and return the terminal snapshot.

    Raises PollError(TIMED_OUT) once ``timeout`` seconds have elapsed,
    PollError(CANCELLED) when ``cancel`` fires, and PollError(TRANSPORT) after
    more than ``max_transient_errors`` consecutive failed queries. Failed
    queries are retried after the regular interval.
    """
    loop = asyncio.get_running_loop()
    started = loop.time()
    polls = 0
    consecutive_errors = 0

    def remaining() -> float | None:
        if timeout is None:
            return None
        return timeout - (loop.time() - started)

    def timed_out() -> PollError:
        return PollError(
            PollErrorKind.TIMED_OUT,
            f"Video generation timed out after {timeout:g}s",
        )

    while not operation.done:
        left = remaining()
        if left is not None and left <= 0:
            raise timed_out()

        await run_cancellable(asyncio.sleep(interval if left is None else min(interval, left)), cancel)

        left = remaining()
        if left is not None and left <= 0:
            raise timed_out()

        polls += 1
        try:
            operation = await run_cancellable(refresh(operation), cancel, timeout=left)
        except PollError as e:
            if e.kind == PollErrorKind.TIMED_OUT:
                raise timed_out() from None
            raise
        except Exception as e:
            consecutive_errors += 1
            if consecutive_errors > max_transient_errors:
                raise PollError(
                    PollErrorKind.TRANSPORT,
                    f"Lost contact with the generation service: {e}",
                ) from e
            logger.warning(
                "Poll #%d for %s failed (%d/%d): %s",
                polls, operation.name, consecutive_errors, max_transient_errors, e,
            )
            continue

        consecutive_errors = 0
        logger.info(
            "Polling video generation status (poll #%d, op=%s, done=%s): %s",
            polls, operation.name, operation.done, operation.metadata,
        )

    return operation
