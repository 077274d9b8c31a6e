"""
HTTP transport: sends a RequestDescriptor over a cookie-carrying httpx client.
Keeps network code separate from the refresh coordination.
"""

import time
from typing import Dict, Optional

import httpx
import structlog

from .descriptor import RequestDescriptor
from .errors import TransportError

logger = structlog.get_logger(__name__)


class HTTPTransport:
    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        headers: Dict[str, str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the transport; the session cookie lives in the client's cookie jar."""
        self.base_url = base_url
        self.timeout = timeout

        default_headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json',
        }
        if headers:
            default_headers.update(headers)

        self._client = httpx.AsyncClient(
            base_url=base_url,
            timeout=httpx.Timeout(self.timeout),
            headers=default_headers,
            transport=transport,
            limits=httpx.Limits(max_connections=20, max_keepalive_connections=10)
        )

    @property
    def cookies(self) -> httpx.Cookies:
        return self._client.cookies

    async def send(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send the request; any non-2xx status or network failure raises TransportError."""
        start_time = time.time()
        request = descriptor.build(self._client)

        try:
            response = await self._client.send(request)
        except httpx.TimeoutException as e:
            logger.warning("request_timeout",
                           method=descriptor.method,
                           url=descriptor.url,
                           timeout_seconds=self.timeout)
            raise TransportError(f"Timeout after {self.timeout}s: {e}", descriptor) from e
        except httpx.TransportError as e:
            logger.warning("connection_error",
                           method=descriptor.method,
                           url=descriptor.url,
                           error=str(e))
            raise TransportError(f"Connection error: {e}", descriptor) from e

        elapsed = time.time() - start_time
        if response.is_success:
            logger.debug("request_succeeded",
                         method=descriptor.method,
                         url=descriptor.url,
                         status_code=response.status_code,
                         elapsed=round(elapsed, 3))
            return response

        logger.info("request_failed",
                    method=descriptor.method,
                    url=descriptor.url,
                    status_code=response.status_code,
                    retried=descriptor.retried,
                    elapsed=round(elapsed, 3))
        raise TransportError(
            f"HTTP {response.status_code}",
            descriptor,
            status_code=response.status_code,
            response=response,
        )

    async def aclose(self):
        await self._client.aclose()
