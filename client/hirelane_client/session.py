"""Durable storage for the signed-in session."""

from __future__ import annotations

from dataclasses import asdict, dataclass
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class Session:
    access_token: str
    user_id: int
    role: str
    email: str
    full_name: str

    @classmethod
    def from_auth_response(cls, payload: dict[str, Any]) -> Session:
        user = payload["user"]
        return cls(
            access_token=payload["access_token"],
            user_id=int(user["id"]),
            role=user["role"],
            email=user["email"],
            full_name=user["full_name"],
        )


class SessionStore(Protocol):
    def get(self) -> Session | None: ...

    def set(self, session: Session) -> None: ...

    def clear(self) -> None: ...


class MemorySessionStore:
    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    def get(self) -> Session | None:
        return self._session

    def set(self, session: Session) -> None:
        self._session = session

    def clear(self) -> None:
        self._session = None


class FileSessionStore:
    """JSON-file session store that survives process restarts.

    A missing, unreadable or malformed file reads as "no session"; the next ``set`` overwrites it.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def get(self) -> Session | None:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            logger.warning("session file unreadable path=%s error=%s", self.path, exc)
            return None

        try:
            data = json.loads(raw)
            return Session(
                access_token=str(data["access_token"]),
                user_id=int(data["user_id"]),
                role=str(data["role"]),
                email=str(data["email"]),
                full_name=str(data["full_name"]),
            )
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("session file corrupt path=%s error=%s", self.path, exc)
            return None

    def set(self, session: Session) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        tmp_path.write_text(json.dumps(asdict(session)), encoding="utf-8")
        os.chmod(tmp_path, 0o600)
        os.replace(tmp_path, self.path)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)
