"""
Authenticated client: every request goes through the auth-failure interceptor,
so an expired access cookie is refreshed once and the request replayed.
"""

from typing import Any, Dict, Optional

import httpx
import structlog

from .config import Config
from .coordinator import RefreshCoordinator
from .descriptor import RequestDescriptor
from .errors import TransportError
from .interceptor import AuthFailureInterceptor
from .session import Identity, SessionState, SessionStore
from .transport import HTTPTransport

logger = structlog.get_logger(__name__)


class AuthClient:
    def __init__(
        self,
        base_url: str,
        session: SessionState = None,
        timeout: float = 30.0,
        refresh_path: str = "/refresh-token",
        refresh_timeout: float = 10.0,
        headers: Dict[str, str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.session = session or SessionState()
        self.refresh_path = refresh_path
        self.refresh_timeout = refresh_timeout

        self._rebuild_pending = False
        self._transport = HTTPTransport(base_url, timeout=timeout, headers=headers, transport=transport)
        self.interceptor = AuthFailureInterceptor(self._build_coordinator(), refresh_path=refresh_path)
        self.session.subscribe(self._on_identity_change)

    @property
    def coordinator(self) -> RefreshCoordinator:
        return self.interceptor.coordinator

    @property
    def cookies(self) -> httpx.Cookies:
        return self._transport.cookies

    def _build_coordinator(self) -> RefreshCoordinator:
        return RefreshCoordinator(
            refresh=self.refresh,
            replay=self.dispatch,
            session=self.session,
            timeout=self.refresh_timeout,
            on_idle=self._on_coordinator_idle,
        )

    def _on_identity_change(self, identity: Optional[Identity]):
        # one refresh lane per logical session, and never two refreshes at once
        if self.coordinator.in_flight:
            self._rebuild_pending = True
            logger.debug("coordinator_rebuild_deferred", user_id=identity.user_id if identity else None)
            return
        self._rebuild()

    def _on_coordinator_idle(self):
        if self._rebuild_pending:
            self._rebuild()

    def _rebuild(self):
        self._rebuild_pending = False
        self.interceptor.coordinator = self._build_coordinator()
        identity = self.session.identity
        logger.debug("coordinator_rebuilt", user_id=identity.user_id if identity else None)

    async def request(
        self,
        method: str,
        url: str,
        *,
        params: Dict[str, Any] = None,
        headers: Dict[str, str] = None,
        json: Any = None,
        content: Optional[bytes] = None,
    ) -> httpx.Response:
        descriptor = RequestDescriptor(method, url, headers=headers, params=params,
                                       json=json, content=content)
        return await self.dispatch(descriptor)

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)

    async def put(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("PUT", url, **kwargs)

    async def patch(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("PATCH", url, **kwargs)

    async def delete(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("DELETE", url, **kwargs)

    async def dispatch(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send `descriptor` and run the outcome through the interceptor."""
        try:
            response = await self._transport.send(descriptor)
        except TransportError as error:
            return await self.interceptor.on_error(error)
        return self.interceptor.on_response(response)

    async def send_public(self, descriptor: RequestDescriptor) -> httpx.Response:
        """Send without interception, for the public account routes."""
        return await self._transport.send(descriptor)

    async def refresh(self) -> httpx.Response:
        """Exchange the refresh cookie for a new session; no body, cookies only."""
        return await self.dispatch(RequestDescriptor("POST", self.refresh_path))

    async def aclose(self):
        self.session.unsubscribe(self._on_identity_change)
        await self._transport.aclose()

    async def __aenter__(self) -> "AuthClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()


def create_client(config: Config, session: SessionState = None,
                  transport: Optional[httpx.AsyncBaseTransport] = None) -> AuthClient:
    """Build an AuthClient from loaded configuration."""
    api = config.api
    refresh = config.refresh

    if not api.get('base_url'):
        raise ValueError("api.base_url is not configured (set API_URL)")

    if session is None:
        store_path = config.get('session', 'store_path')
        session = SessionState(SessionStore(store_path) if store_path else None)

    return AuthClient(
        base_url=api['base_url'],
        session=session,
        timeout=api.get('timeout', 30.0),
        refresh_path=refresh.get('path', '/refresh-token'),
        refresh_timeout=refresh.get('timeout', 10.0),
        headers=api.get('headers'),
        transport=transport,
    )
