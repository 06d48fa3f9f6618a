"""Explicit credential object and its on-disk persistence."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from rotaract.app.core.config import settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Session:
    """Bearer credentials for one signed-in administrator.

    An anonymous session carries no token; requests made with it simply
    omit the ``Authorization`` header.
    """

    access_token: str | None = None
    refresh_token: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.access_token)

    def auth_headers(self) -> dict[str, str]:
        if not self.access_token:
            return {}
        return {"Authorization": f"Bearer {self.access_token}"}


class SessionStore:
    """Load and persist a :class:`Session` as ``{"accessToken", "refreshToken"}`` JSON."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = Path(path or settings.SESSION_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Session:
        """Return the stored session, or an anonymous one if nothing usable is stored."""
        if not self._path.exists():
            return Session()
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable session file %s", self._path)
            return Session()
        if not isinstance(raw, dict):
            return Session()
        return Session(
            access_token=raw.get("accessToken") or None,
            refresh_token=raw.get("refreshToken") or None,
        )

    def save(self, session: Session) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        payload = {
            "accessToken": session.access_token,
            "refreshToken": session.refresh_token,
        }
        self._path.write_text(json.dumps(payload), encoding="utf-8")

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()
