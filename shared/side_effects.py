"""
Deferred side effects.

Work that must happen after a local commit but must never block or undo it
(pushing roles to the identity provider, for example) is submitted here.
Each side effect runs as its own asyncio task with its own retry policy,
independent of the request that triggered it. Final failures are logged;
the local database stays authoritative.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from tenacity import AsyncRetrying, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

SideEffect = Callable[[], Awaitable[None]]


class SideEffectRunner:
    """
    Fire-and-log executor for post-commit work.

    Usage:
        runner.submit("idp-role-sync", lambda: role_sync.sync(subject, Role.CO))
    """

    def __init__(self, max_attempts: int = 3, base_delay: float = 1.0):
        """
        Args:
            max_attempts: Attempts per side effect, including the first one
            base_delay: First backoff delay in seconds; doubles per attempt
        """
        self._max_attempts = max_attempts
        self._base_delay = base_delay
        self._tasks: set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        """Number of side effects still running."""
        return len(self._tasks)

    def submit(self, name: str, effect: SideEffect) -> asyncio.Task:
        """
        Schedule a side effect on the running event loop.

        Args:
            name: Short label used in logs
            effect: Zero-argument callable returning a fresh awaitable per attempt

        Returns:
            The scheduled task (callers normally ignore it)
        """
        task = asyncio.get_running_loop().create_task(
            self._run(name, effect), name=f"side-effect:{name}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, name: str, effect: SideEffect) -> None:
        retrying = AsyncRetrying(
            stop=stop_after_attempt(self._max_attempts),
            wait=wait_exponential(multiplier=self._base_delay),
            reraise=True,
        )
        try:
            async for attempt in retrying:
                with attempt:
                    await effect()
        except asyncio.CancelledError:
            raise
        except Exception:
            logger.exception(
                f"Side effect '{name}' failed after {self._max_attempts} attempts; "
                "local state remains authoritative"
            )
            return
        logger.debug(f"Side effect '{name}' completed")

    async def drain(self, timeout: Optional[float] = None) -> None:
        """
        Wait for outstanding side effects.

        Tasks still running after ``timeout`` seconds are cancelled.
        """
        tasks = list(self._tasks)
        if not tasks:
            return
        _, still_running = await asyncio.wait(tasks, timeout=timeout)
        for task in still_running:
            task.cancel()
        if still_running:
            logger.warning(f"Cancelled {len(still_running)} side effect(s) on drain")
