"""
Exceptions raised by the authenticated client
"""
from typing import Optional

import httpx


class AuthClientError(Exception):
    """Base class for every error raised by authclient."""


class TransportError(AuthClientError):
    def __init__(self, message: str, descriptor, status_code: Optional[int] = None,
                 response: Optional[httpx.Response] = None):
        """Wrap a failed exchange with the request that produced it."""
        super().__init__(message)
        self.descriptor = descriptor
        self.status_code = status_code
        self.response = response

    @property
    def is_unauthorized(self) -> bool:
        return self.status_code == 401


class RefreshError(AuthClientError):
    """The refresh exchange did not produce a new session."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.cause = cause


class RefreshInvalidError(RefreshError):
    """The refresh endpoint itself answered 401."""


class RefreshTimeoutError(RefreshError):
    """The refresh call did not settle in time."""


class NotAuthenticatedError(AuthClientError):
    """An account operation needs an identity and there is none."""
