"""
Everything needed to issue an HTTP call again, identically
"""
from typing import Any, Dict, Optional

import httpx


class RequestDescriptor:
    def __init__(
        self,
        method: str,
        url: str,
        headers: Dict[str, str] = None,
        params: Dict[str, Any] = None,
        json: Any = None,
        content: Optional[bytes] = None,
    ):
        """Describe a request; `retried` is flipped once by the interceptor and never reset."""
        self.method = method.upper()
        self.url = url
        self.headers = dict(headers or {})
        self.params = dict(params or {})
        self.json = json
        self.content = content
        self.retried = False

    def mark_retried(self):
        self.retried = True

    def build(self, client: httpx.AsyncClient) -> httpx.Request:
        """Build a fresh httpx.Request on `client` so cookies are re-read on every send."""
        kwargs = {'headers': self.headers}
        if self.params:
            kwargs['params'] = self.params
        if self.json is not None:
            kwargs['json'] = self.json
        elif self.content is not None:
            kwargs['content'] = self.content
        return client.build_request(self.method, self.url, **kwargs)

    def __repr__(self) -> str:
        flag = ' retried' if self.retried else ''
        return f"<RequestDescriptor {self.method} {self.url}{flag}>"
