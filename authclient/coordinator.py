"""
Single-flight refresh coordination.

One RefreshCoordinator exists per client session. The first caller that needs
a refresh starts it; everyone arriving while it is outstanding is parked in a
PendingQueue and released (or failed) once it settles. Flag and queue are only
touched between suspension points, so "check flag" and "set flag" can't race.
"""

import asyncio
from typing import Awaitable, Callable, Optional

import httpx
import structlog

from .descriptor import RequestDescriptor
from .errors import RefreshError, RefreshTimeoutError
from .pending import PendingQueue

logger = structlog.get_logger(__name__)

RefreshCall = Callable[[], Awaitable[httpx.Response]]
ReplayCall = Callable[[RequestDescriptor], Awaitable[httpx.Response]]


class RefreshCoordinator:
    def __init__(self, refresh: RefreshCall, replay: ReplayCall, session, timeout: float = 10.0,
                 on_idle: Optional[Callable[[], None]] = None):
        """
        Args:
            refresh: issues the refresh exchange, raising on failure
            replay: re-issues a descriptor through the full client pipeline
            session: anything with a ``clear()`` method; a ``generation``
                attribute, when present, stops a stale refresh from logging
                out an identity set after it started
            timeout: upper bound, in seconds, on a single refresh call
            on_idle: called each time an outstanding refresh settles
        """
        self._refresh = refresh
        self._replay = replay
        self._session = session
        self._on_idle = on_idle
        self.timeout = timeout

        self._refreshing = False
        self._started_generation = None
        self._queue = PendingQueue()

    @property
    def in_flight(self) -> bool:
        return self._refreshing

    @property
    def pending(self) -> int:
        return len(self._queue)

    async def coordinate(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Refresh once for the whole storm, then replay `descriptor`."""
        if self._refreshing:
            waiter = self._queue.enqueue()
            logger.info("request_queued",
                        method=descriptor.method,
                        url=descriptor.url,
                        position=len(self._queue))
            await waiter
            return await self._replay(descriptor)

        self._refreshing = True
        self._started_generation = self._session_generation()
        logger.info("refresh_started", method=descriptor.method, url=descriptor.url)

        try:
            await self._run_refresh()
        except asyncio.CancelledError:
            # trigger went away; the credential itself was never judged
            self._fail(RefreshError("Refresh cancelled"), clear_session=False)
            raise
        except RefreshError as error:
            self._fail(error, clear_session=True)
            raise

        released = self._queue.resolve_all()
        self._refreshing = False
        logger.info("refresh_succeeded", released=released)
        self._settled()

        # released callers issue their replays ahead of the trigger's
        await asyncio.sleep(0)
        return await self._replay(descriptor)

    async def _run_refresh(self):
        try:
            return await asyncio.wait_for(self._refresh(), timeout=self.timeout)
        except RefreshError:
            raise
        except asyncio.TimeoutError as e:
            raise RefreshTimeoutError(
                f"Refresh did not complete within {self.timeout}s", cause=e
            ) from e
        except Exception as e:
            raise RefreshError(f"Refresh failed: {e}", cause=e) from e

    def _session_generation(self):
        return getattr(self._session, 'generation', None)

    def _fail(self, error: RefreshError, clear_session: bool):
        rejected = self._queue.reject_all(error)
        if clear_session and self._session_generation() != self._started_generation:
            logger.info("session_changed_during_refresh")
            clear_session = False
        if clear_session:
            try:
                self._session.clear()
            except Exception as e:
                logger.error("session_clear_failed", error=str(e), exc_info=True)
        self._refreshing = False
        logger.warning("refresh_failed",
                       error=str(error),
                       error_type=type(error).__name__,
                       rejected=rejected,
                       session_cleared=clear_session)
        self._settled()

    def _settled(self):
        if self._on_idle is not None:
            self._on_idle()
