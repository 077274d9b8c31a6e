"""
Response interceptor that turns expired-credential 401s into a coordinated refresh
"""

import httpx
import structlog

from .coordinator import RefreshCoordinator
from .errors import RefreshInvalidError, TransportError

logger = structlog.get_logger(__name__)


class AuthFailureInterceptor:
    def __init__(self, coordinator: RefreshCoordinator, refresh_path: str = "/refresh-token"):
        self.coordinator = coordinator
        self.refresh_path = refresh_path.rstrip('/')

    def on_response(self, response: httpx.Response) -> httpx.Response:
        return response

    async def on_error(self, error: TransportError) -> httpx.Response:
        """Recover from `error` or re-raise it.

        Only a first 401 on a non-refresh URL is recovered: the descriptor is
        marked as retried and handed to the coordinator, whose result replaces
        the failure. A 401 from the refresh endpoint means the refresh
        credential itself is gone and surfaces as RefreshInvalidError.
        """
        descriptor = error.descriptor

        if not error.is_unauthorized:
            raise error

        if self.is_refresh_url(descriptor.url):
            logger.error("refresh_token_invalid", url=descriptor.url)
            raise RefreshInvalidError("Refresh token is invalid or expired", cause=error) from error

        if descriptor.retried:
            logger.info("retry_exhausted", method=descriptor.method, url=descriptor.url)
            raise error

        descriptor.mark_retried()
        return await self.coordinator.coordinate(descriptor)

    def is_refresh_url(self, url: str) -> bool:
        path = httpx.URL(url).path.rstrip('/')
        return path.endswith(self.refresh_path)
