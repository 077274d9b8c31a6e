"""
Public account routes: login, register, logout.
These bypass the refresh interceptor, a failed login is just a failed login.
"""
from typing import Any, Dict

import structlog

from .client import AuthClient
from .descriptor import RequestDescriptor
from .errors import NotAuthenticatedError
from .session import Identity

logger = structlog.get_logger(__name__)


class AccountService:
    def __init__(self, client: AuthClient):
        self.client = client

    @property
    def session(self):
        return self.client.session

    async def login(self, email: str, password: str) -> Identity:
        """Log in; the server sets the session cookies, the identity is kept locally."""
        response = await self.client.send_public(
            RequestDescriptor("POST", "/login", json={'email': email, 'password': password})
        )
        identity = Identity.from_dict(response.json())
        self.session.set(identity)
        logger.info("login_succeeded", user_id=identity.user_id)
        return identity

    async def register(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        response = await self.client.send_public(RequestDescriptor("POST", "/register", json=payload))
        logger.info("user_registered", email=payload.get('email'))
        return response.json()

    async def logout(self):
        identity = self.session.identity
        if identity is None:
            raise NotAuthenticatedError("No user is logged in")

        await self.client.send_public(
            RequestDescriptor("POST", "/logout", json={'user_id': identity.user_id})
        )
        self.session.clear()
        logger.info("logout_succeeded", user_id=identity.user_id)
