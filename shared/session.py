"""Session state shared by every FIR portal view.

The session is an explicit value: views receive a ``Session`` and read
``session.is_authenticated`` instead of poking at storage themselves. This
module is the only place that reads or writes the persisted state.

The bearer token, the remembered login email and the theme preference live
in data/config/session.json so they survive a browser refresh or a restart
of the Streamlit server.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

_CONFIG_DIR = Path(__file__).resolve().parent.parent / "data" / "config"
_SESSION_FILE = _CONFIG_DIR / "session.json"

THEMES = ("light", "dark")
_DEFAULT_THEME = "light"


@dataclass(frozen=True)
class Session:
    """Snapshot of the current session, passed into views that need it."""

    token: str | None = None
    remembered_email: str = ""
    theme: str = _DEFAULT_THEME
    logged_in_at: str = ""

    @property
    def is_authenticated(self) -> bool:
        return bool(self.token)


# ── Internal helpers ─────────────────────────────────────────────────────────


def _load_data() -> dict:
    if not _SESSION_FILE.exists():
        return {}
    try:
        data = json.loads(_SESSION_FILE.read_text())
    except (json.JSONDecodeError, OSError):
        logger.warning("Ignoring unreadable session file %s", _SESSION_FILE)
        return {}
    return data if isinstance(data, dict) else {}


def _save_data(data: dict) -> None:
    _CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    _SESSION_FILE.write_text(json.dumps(data, indent=2))


def _update(**changes) -> Session:
    data = _load_data()
    for key, value in changes.items():
        if value is None:
            data.pop(key, None)
        else:
            data[key] = value
    _save_data(data)
    return get_session()


# ── Public API ───────────────────────────────────────────────────────────────


def get_session() -> Session:
    """Return the current session value."""
    data = _load_data()
    theme = data.get("theme")
    if theme not in THEMES:
        theme = _DEFAULT_THEME
    return Session(
        token=data.get("token") or None,
        remembered_email=data.get("remembered_email") or "",
        theme=theme,
        logged_in_at=data.get("logged_in_at") or "",
    )


def set_token(token: str) -> Session:
    """Store the bearer token returned by a successful login."""
    if not token:
        raise ValueError("token must be a non-empty string")
    return _update(
        token=token,
        logged_in_at=datetime.now(timezone.utc).isoformat(),
    )


def clear_session() -> Session:
    """Log out: drop the token but keep the remembered email and theme."""
    return _update(token=None, logged_in_at=None)


def remember_email(email: str) -> Session:
    return _update(remembered_email=email.strip() or None)


def forget_email() -> Session:
    return _update(remembered_email=None)


def set_theme(theme: str) -> Session:
    if theme not in THEMES:
        raise ValueError(f"Unknown theme: {theme}")
    return _update(theme=theme)


def toggle_theme() -> Session:
    """Flip between light and dark."""
    current = get_session().theme
    return set_theme("dark" if current == "light" else "light")
