"""Form controllers: each one wires a FormEngine to its backend calls.

- RegistrationForm -- account creation (multipart, with photo)
- LoginForm        -- email/password/captcha, stores the session token
- FirIntakeForm    -- create a new FIR or edit an existing one
- ProfileForm      -- partial profile updates

Controllers return ``SubmitResult``; the dashboard reads
``controller.next_view`` after a successful submit to decide where to go.
"""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any

from app.form_engine import FormEngine, Notifier, SubmitResult
from app.validation import (
    fir_schema,
    login_schema,
    profile_schema,
    registration_schema,
)

import sys as _sys
_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
import shared.session as session_mod
from shared.api_client import ApiError, AuthExpiredError, BackendClient

logger = logging.getLogger(__name__)


def _wire_value(value: Any) -> Any:
    """Convert a form value into something the backend JSON API accepts."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, str):
        return value.strip()
    return value


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------

class RegistrationForm:
    next_view = "login"

    def __init__(self, client: BackendClient, notifier: Notifier | None = None):
        self.client = client
        self.engine = FormEngine(
            registration_schema(),
            notifier=notifier or Notifier(),
            failure_message="Registration failed. Please try again.",
        )

    @property
    def full_name(self) -> str:
        values = self.engine.values
        return " ".join(
            part.strip()
            for part in (values["firstName"], values["middleName"], values["lastName"])
            if part and part.strip()
        )

    def set_photo(self, photo: Any) -> str:
        """Store a new upload and check it straight away."""
        self.engine.set_field("photo", photo)
        return self.engine.touch_field("photo")

    def _send(self, values: dict[str, Any]) -> Any:
        fields = {
            "firstName": values["firstName"].strip(),
            "middleName": (values["middleName"] or "").strip(),
            "lastName": values["lastName"].strip(),
            "mobileNumber": values["mobileNumber"],
            "email": values["email"].strip(),
            "password": values["password"],
            "confirmPassword": values["confirmPassword"],
        }
        return self.client.register(fields, values["photo"])

    def submit(self) -> SubmitResult:
        return self.engine.submit(self._send, "Registered successfully")


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------

class LoginForm:
    """Login with a captcha challenge.

    Any failed login attempt asks the backend for a fresh captcha, even when
    only the password was wrong.
    """

    next_view = "dashboard"

    def __init__(self, client: BackendClient, notifier: Notifier | None = None):
        self.client = client
        self.notifier = notifier or Notifier()
        self.engine = FormEngine(
            login_schema(),
            notifier=self.notifier,
            failure_message="Invalid credentials or captcha",
        )
        self.session = session_mod.get_session()
        if self.session.remembered_email:
            self.engine.set_field("email", self.session.remembered_email)
            self.engine.set_field("rememberMe", True)

    @property
    def captcha_text(self) -> str:
        return self.engine.context.get("captcha_text", "")

    def mount(self) -> None:
        self.refresh_captcha()

    def refresh_captcha(self) -> bool:
        """Fetch a new challenge and clear whatever was typed for the old one."""
        self.engine.set_field("captcha", "")
        try:
            text = self.client.fetch_captcha()
        except ApiError:
            logger.warning("Failed to load captcha", exc_info=True)
            self.engine.context.pop("captcha_text", None)
            self.notifier.error("Failed to load captcha")
            return False
        self.engine.context["captcha_text"] = text
        return True

    def _send(self, values: dict[str, Any]) -> str:
        return self.client.login(values["email"].strip(), values["password"], values["captcha"])

    def submit(self) -> SubmitResult:
        result = self.engine.submit(self._send)
        if result.status == "failed":
            self.refresh_captcha()
            return result
        if not result.ok:
            return result

        email = self.engine.values["email"].strip()
        if self.engine.values.get("rememberMe"):
            session_mod.remember_email(email)
        else:
            session_mod.forget_email()
        self.session = session_mod.set_token(result.payload)
        self.notifier.success("Logged in successfully")
        result.message = "Logged in successfully"
        return result


# ---------------------------------------------------------------------------
# FIR intake
# ---------------------------------------------------------------------------

class FirIntakeForm:
    """Create a FIR, or edit one when ``fir_id`` is given."""

    next_view = "report"

    def __init__(
        self,
        client: BackendClient,
        notifier: Notifier | None = None,
        fir_id: str | None = None,
    ):
        self.client = client
        self.fir_id = fir_id
        self.notifier = notifier or Notifier()
        self.engine = FormEngine(
            fir_schema(),
            notifier=self.notifier,
            failure_message="Error submitting form",
        )

    @property
    def is_edit(self) -> bool:
        return bool(self.fir_id)

    def mount(self) -> bool:
        """Load the existing record in edit mode. Returns False if that failed."""
        if not self.fir_id:
            return True
        try:
            record = self.client.get_fir(self.fir_id)
        except ApiError:
            logger.warning("Failed to fetch FIR %s", self.fir_id, exc_info=True)
            self.notifier.error("Error fetching data")
            return False
        self.engine.load_record(record)
        return True

    def payload(self, values: dict[str, Any]) -> dict[str, Any]:
        return {name: _wire_value(value) for name, value in values.items()}

    def _send(self, values: dict[str, Any]) -> Any:
        data = self.payload(values)
        if self.fir_id:
            return self.client.update_fir(self.fir_id, data)
        return self.client.create_fir(data)

    def submit(self) -> SubmitResult:
        message = "FIR updated successfully" if self.fir_id else "FIR created successfully"
        return self.engine.submit(self._send, message)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------

_PROFILE_TEXT_FIELDS = ("firstName", "middleName", "lastName", "mobileNumber", "password")


class ProfileForm:
    next_view = "profile"

    def __init__(self, client: BackendClient, notifier: Notifier | None = None):
        self.client = client
        self.notifier = notifier or Notifier()
        self.user: dict | None = None
        self.engine = FormEngine(
            profile_schema(),
            notifier=self.notifier,
            failure_message="Failed to update profile",
        )

    def load(self) -> bool:
        try:
            user = self.client.get_profile()
        except ApiError:
            logger.warning("Failed to load profile", exc_info=True)
            self.notifier.error("Failed to load profile")
            return False
        self.user = user
        self.engine.load_record(
            {
                "firstName": user.get("firstName") or "",
                "middleName": user.get("middleName") or "",
                "lastName": user.get("lastName") or "",
                "mobileNumber": user.get("mobileNumber") or "",
            }
        )
        return True

    @property
    def photo_bytes(self) -> bytes | None:
        """Decoded profile photo from the backend's base64 field."""
        encoded = (self.user or {}).get("photoBase64")
        if not encoded:
            return None
        try:
            return base64.b64decode(encoded)
        except (binascii.Error, ValueError):
            return None

    def _send(self, values: dict[str, Any]) -> Any:
        fields = {
            name: values[name].strip() if name != "password" else values[name]
            for name in _PROFILE_TEXT_FIELDS
            if values.get(name) and str(values[name]).strip()
        }
        return self.client.update_profile(fields, values.get("photo"))

    def submit(self) -> SubmitResult:
        result = self.engine.submit(self._send, "Profile updated successfully")
        if result.ok:
            self.load()
        return result


# ---------------------------------------------------------------------------
# Dashboard
# ---------------------------------------------------------------------------

def fetch_current_user(client: BackendClient, notifier: Notifier) -> dict | None:
    """Load the logged-in user; an expired token logs the session out."""
    try:
        return client.get_user()
    except AuthExpiredError:
        logger.info("Session token rejected; clearing session")
        session_mod.clear_session()
        notifier.error("Session expired. Please log in again.")
        return None
    except ApiError:
        logger.warning("Failed to fetch user data", exc_info=True)
        notifier.error("Failed to load user data")
        return None
