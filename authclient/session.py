"""
Local knowledge of who is logged in.

The session credential itself is an opaque cookie held by the transport; this
module only tracks the identity the application learned at login, plus a
small on-disk "current user" marker so it survives restarts.
"""

import json
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import structlog

logger = structlog.get_logger(__name__)


class Identity:
    def __init__(self, user_id: str, email: str = None, first_name: str = None,
                 last_name: str = None, role: str = None):
        self.user_id = user_id
        self.email = email
        self.first_name = first_name
        self.last_name = last_name
        self.role = role

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Identity":
        """Build an identity from a login response or a stored marker."""
        if not isinstance(data, dict) or not data.get('user_id'):
            raise ValueError("Identity requires a mapping with a user_id")
        return cls(
            user_id=data['user_id'],
            email=data.get('email'),
            first_name=data.get('first_name'),
            last_name=data.get('last_name'),
            role=data.get('role'),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'user_id': self.user_id,
            'email': self.email,
            'first_name': self.first_name,
            'last_name': self.last_name,
            'role': self.role,
        }

    def __eq__(self, other) -> bool:
        return isinstance(other, Identity) and self.to_dict() == other.to_dict()

    def __hash__(self) -> int:
        return hash(tuple(self.to_dict().items()))

    def __repr__(self) -> str:
        return f"<Identity {self.user_id} role={self.role}>"


class SessionStore:
    """JSON file holding the current user marker."""

    def __init__(self, path):
        self.path = Path(path)

    def load(self) -> Optional[Identity]:
        if not self.path.exists():
            return None
        try:
            with open(self.path, 'r') as f:
                return Identity.from_dict(json.load(f))
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("session_marker_unreadable", path=str(self.path), error=str(e))
            return None

    def save(self, identity: Identity):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, 'w') as f:
            json.dump(identity.to_dict(), f)

    def remove(self):
        self.path.unlink(missing_ok=True)


class SessionState:
    def __init__(self, store: SessionStore = None):
        """Restore the identity from `store` when one is given."""
        self.store = store
        self._identity = store.load() if store else None
        self._listeners: List[Callable[[Optional[Identity]], None]] = []
        # bumped on every identity change
        self.generation = 0

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_authenticated(self) -> bool:
        return self._identity is not None

    def subscribe(self, callback: Callable[[Optional[Identity]], None]):
        """Call `callback(identity)` whenever the identity changes."""
        self._listeners.append(callback)

    def unsubscribe(self, callback: Callable[[Optional[Identity]], None]):
        if callback in self._listeners:
            self._listeners.remove(callback)

    def set(self, identity: Identity):
        changed = identity != self._identity
        self._identity = identity
        if self.store:
            self.store.save(identity)
        if changed:
            logger.info("session_established", user_id=identity.user_id, role=identity.role)
            self._notify()

    def clear(self):
        """Forget the identity and drop the stored marker."""
        had_identity = self._identity is not None
        self._identity = None
        if self.store:
            self.store.remove()
        logger.info("session_cleared", had_identity=had_identity)
        if had_identity:
            self._notify()

    def _notify(self):
        self.generation += 1
        for callback in list(self._listeners):
            callback(self._identity)
