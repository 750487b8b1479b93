"""HTTP client for the FIR backend service.

Every network call the portal makes goes through ``BackendClient``:
captcha issuance, registration, login, profile, and FIR record CRUD.
Transport problems and non-2xx responses are raised as ``ApiError`` so the
views only ever catch one exception type.

The base URL and timeout come from ``shared.settings`` (FIR_API_BASE_URL,
FIR_REQUEST_TIMEOUT) unless passed explicitly.
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from shared.settings import get_settings

logger = logging.getLogger(__name__)


class ApiError(Exception):
    """A backend call failed.

    ``message`` is the text the backend sent back, or None when it sent
    nothing useful (callers substitute their own fallback). ``status_code``
    is None for transport errors (connection refused, DNS, timeout).
    """

    def __init__(self, message: str | None, status_code: int | None = None):
        super().__init__(message or "")
        self.message = message
        self.status_code = status_code


class AuthExpiredError(ApiError):
    """The backend rejected the bearer token (HTTP 401)."""


def _error_message(resp: requests.Response) -> str | None:
    """Pull a human-readable message out of an error response body."""
    text = (resp.text or "").strip()
    if not text:
        return None
    try:
        body = resp.json()
    except ValueError:
        return text
    if isinstance(body, str):
        return body.strip() or None
    if isinstance(body, dict):
        for key in ("message", "error", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
    return text


def _file_part(upload: Any) -> tuple[str, bytes, str]:
    """Convert an uploaded file reference into a requests multipart tuple."""
    return (upload.name, upload.data, upload.content_type)


class BackendClient:
    """Thin wrapper around ``requests`` for the FIR backend API."""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        http: requests.Session | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.token = token
        self.timeout = timeout if timeout is not None else settings.request_timeout
        self._http = http or requests.Session()

    # ── Internal helpers ─────────────────────────────────────────────────

    def _headers(self, auth: bool) -> dict[str, str]:
        if auth and self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    def _request(
        self, method: str, path: str, *, auth: bool = True, **kwargs
    ) -> requests.Response:
        url = f"{self.base_url}{path}"
        try:
            resp = self._http.request(
                method,
                url,
                headers=self._headers(auth),
                timeout=self.timeout,
                **kwargs,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, url, exc)
            raise ApiError(None) from exc

        if resp.status_code == 401:
            raise AuthExpiredError(_error_message(resp), 401)
        if not resp.ok:
            message = _error_message(resp)
            logger.warning("%s %s returned %s: %s", method, url, resp.status_code, message)
            raise ApiError(message, resp.status_code)
        return resp

    @staticmethod
    def _json(resp: requests.Response) -> Any:
        if not resp.content:
            return None
        try:
            return resp.json()
        except ValueError:
            return resp.text

    # ── Auth ─────────────────────────────────────────────────────────────

    def fetch_captcha(self) -> str:
        """Request a new captcha challenge and return its text."""
        body = self._json(self._request("GET", "/api/auth/captcha-text", auth=False))
        text = body.get("captchaText") if isinstance(body, dict) else None
        if not text:
            raise ApiError("Captcha response did not include captchaText")
        return str(text)

    def login(self, email: str, password: str, captcha: str) -> str:
        """Log in and return the bearer token."""
        body = self._json(
            self._request(
                "POST",
                "/api/auth/login",
                auth=False,
                json={"email": email, "password": password, "captcha": captcha},
            )
        )
        token = body.get("token") if isinstance(body, dict) else None
        if not token:
            raise ApiError("Login response did not include a token")
        self.token = token
        return token

    def register(self, fields: dict[str, str], photo: Any) -> Any:
        """Create an account. ``photo`` is an uploaded file reference."""
        resp = self._request(
            "POST",
            "/api/auth/register",
            auth=False,
            data=fields,
            files={"photo": _file_part(photo)},
        )
        return self._json(resp)

    def get_user(self) -> dict:
        return self._json(self._request("GET", "/api/auth/user")) or {}

    def get_profile(self) -> dict:
        return self._json(self._request("GET", "/api/auth/profile")) or {}

    def update_profile(self, fields: dict[str, str], photo: Any | None = None) -> Any:
        """Send a partial profile update as multipart form data."""
        files = {"photo": _file_part(photo)} if photo is not None else None
        resp = self._request("PUT", "/api/auth/profile", data=fields, files=files)
        return self._json(resp)

    # ── FIR records ──────────────────────────────────────────────────────

    def list_firs(self) -> list[dict]:
        body = self._json(self._request("GET", "/api/fir"))
        return body if isinstance(body, list) else []

    def get_fir(self, fir_id: str) -> dict:
        return self._json(self._request("GET", f"/api/fir/{fir_id}")) or {}

    def create_fir(self, data: dict[str, Any]) -> Any:
        return self._json(self._request("POST", "/api/fir", json=data))

    def update_fir(self, fir_id: str, data: dict[str, Any]) -> Any:
        return self._json(self._request("PUT", f"/api/fir/{fir_id}", json=data))

    def delete_fir(self, fir_id: str) -> None:
        self._request("DELETE", f"/api/fir/{fir_id}")
