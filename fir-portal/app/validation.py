"""Field definitions and validation rules for the FIR portal forms.

One declarative table covers the four forms the portal renders
(registration, login, FIR intake, profile). Each field carries a rule: a
pure function ``(name, value, snapshot) -> str`` returning an error message
or ``""`` when the value is acceptable. ``snapshot`` is a read-only view of
the whole form, so cross-field checks such as confirm-password read the
sibling value from it rather than from captured state.

Option lists for the FIR intake selects can be overridden per deployment in
data/config/fir-portal.json.
"""

from __future__ import annotations

import mimetypes
import re
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from pathlib import Path
from types import MappingProxyType
from typing import Any

import sys as _sys
_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.config_store import get_option_list

TOOL_NAME = "fir-portal"

MAX_PHOTO_BYTES = 1024 * 1024
PHOTO_TYPES = ("image/jpeg", "image/jpg", "image/png")

_NAME_RE = re.compile(r"^[a-zA-Z]+$")
_MOBILE_RE = re.compile(r"^\d{10}$", re.ASCII)
_COMPLAINANT_MOBILE_RE = re.compile(r"^[6-9]\d{9}$", re.ASCII)
_EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_AADHAAR_RE = re.compile(r"^\d{12}$", re.ASCII)
_DIARY_REF_RE = re.compile(r"^[A-Z0-9/-]+$")


# ---------------------------------------------------------------------------
# Values
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class UploadedFile:
    """An uploaded photo: enough to validate it and to send it as multipart."""

    name: str
    size: int
    content_type: str
    data: bytes = b""

    @classmethod
    def from_upload(cls, upload: Any) -> UploadedFile:
        """Build from a Streamlit ``UploadedFile`` (name, size, type, getvalue)."""
        data = upload.getvalue()
        return cls(
            name=upload.name,
            size=getattr(upload, "size", len(data)),
            content_type=upload.type or "",
            data=data,
        )

    @classmethod
    def from_path(cls, path: str | Path) -> UploadedFile:
        path = Path(path)
        data = path.read_bytes()
        content_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
        return cls(name=path.name, size=len(data), content_type=content_type, data=data)


class FormSnapshot(Mapping):
    """Read-only view of a form's values handed to every rule.

    ``context`` carries inputs that are not fields, such as the captcha text
    the client currently knows or the date to treat as today.
    """

    def __init__(self, values: Mapping[str, Any], context: Mapping[str, Any] | None = None):
        self._values = dict(values)
        self.context = MappingProxyType(dict(context or {}))

    def __getitem__(self, key: str) -> Any:
        return self._values[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"FormSnapshot({self._values!r}, context={dict(self.context)!r})"


Rule = Callable[[str, Any, FormSnapshot], str]


def _text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (list, tuple, set, frozenset)):
        return len(value) == 0
    if isinstance(value, str):
        return not value.strip()
    return False


# ---------------------------------------------------------------------------
# Rule building blocks
# ---------------------------------------------------------------------------

def chain(*rules: Rule) -> Rule:
    """Combine rules; the first non-empty error wins."""

    def _rule(name: str, value: Any, snapshot: FormSnapshot) -> str:
        for rule in rules:
            error = rule(name, value, snapshot)
            if error:
                return error
        return ""

    return _rule


def required(message: str) -> Rule:
    def _rule(name: str, value: Any, snapshot: FormSnapshot) -> str:
        return message if _is_blank(value) else ""

    return _rule


def optional(rule: Rule) -> Rule:
    """Run *rule* only when the field has a value."""

    def _rule(name: str, value: Any, snapshot: FormSnapshot) -> str:
        if _is_blank(value):
            return ""
        return rule(name, value, snapshot)

    return _rule


def min_length(length: int, message: str) -> Rule:
    def _rule(name: str, value: Any, snapshot: FormSnapshot) -> str:
        return message if len(_text(value)) < length else ""

    return _rule


def matches(pattern: re.Pattern, message: str) -> Rule:
    def _rule(name: str, value: Any, snapshot: FormSnapshot) -> str:
        return "" if pattern.match(_text(value)) else message

    return _rule


# ---------------------------------------------------------------------------
# Domain rules
# ---------------------------------------------------------------------------

def name_rule(label: str, is_required: bool) -> Rule:
    """Person-name rule shared by registration and profile."""
    checks = chain(
        min_length(2, f"{label} must be at least 2 characters"),
        matches(_NAME_RE, f"{label} can only contain letters"),
    )
    if is_required:
        return chain(required(f"{label} is required"), checks)
    return optional(checks)


def _password_strength(name: str, value: Any, snapshot: FormSnapshot) -> str:
    text = _text(value)
    if len(text) < 8:
        return "Password must be at least 8 characters"
    if not (
        re.search(r"[a-z]", text)
        and re.search(r"[A-Z]", text)
        and re.search(r"\d", text, re.ASCII)
    ):
        return "Password must contain uppercase, lowercase and numbers"
    return ""


def _passwords_match(name: str, value: Any, snapshot: FormSnapshot) -> str:
    if _text(value) != _text(snapshot.get("password")):
        return "Passwords do not match"
    return ""


def _photo_checks(name: str, value: Any, snapshot: FormSnapshot) -> str:
    size = getattr(value, "size", None)
    content_type = getattr(value, "content_type", None)
    if size is None or content_type is None:
        return "Profile photo is required"
    if size > MAX_PHOTO_BYTES:
        return "Photo must be under 1MB"
    if content_type not in PHOTO_TYPES:
        return "Only JPEG, JPG, PNG allowed"
    return ""


def parse_date(value: Any) -> date | None:
    """An ISO date (``YYYY-MM-DD``, optionally with a ``T`` time part), or None."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = _text(value).strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    if "T" not in text:
        return None
    try:
        return datetime.fromisoformat(text).date()
    except ValueError:
        return None


def _today(snapshot: FormSnapshot) -> date:
    today = snapshot.context.get("today")
    return parse_date(today) or date.today()


def _date_in_past(name: str, value: Any, snapshot: FormSnapshot) -> str:
    parsed = parse_date(value)
    if parsed is None:
        return "Invalid date"
    if parsed >= _today(snapshot):
        return "Date of birth must be in the past"
    return ""


def _captcha_matches(name: str, value: Any, snapshot: FormSnapshot) -> str:
    expected = snapshot.context.get("captcha_text")
    if expected and _text(value) != expected:
        return "Incorrect captcha"
    return ""


EMAIL_RULE = chain(
    required("Email is required"),
    matches(_EMAIL_RE, "Please enter a valid email address"),
)
MOBILE_RULE = chain(
    required("Mobile number is required"),
    matches(_MOBILE_RE, "Mobile number must be 10 digits"),
)
PASSWORD_RULE = chain(required("Password is required"), _password_strength)
CONFIRM_PASSWORD_RULE = chain(required("Please confirm your password"), _passwords_match)
PHOTO_RULE = chain(required("Profile photo is required"), _photo_checks)
CAPTCHA_RULE = chain(required("Captcha is required"), _captcha_matches)


# ---------------------------------------------------------------------------
# Field and schema definitions
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class FieldSpec:
    """A single field within a form schema."""

    name: str
    label: str
    field_type: str = "text"  # text, password, email, select, checkbox_group, file, date, boolean, textarea
    required: bool = False
    options: tuple[str, ...] = ()
    rule: Rule | None = None
    help_text: str = ""

    @property
    def validates_on_blur(self) -> bool:
        """Checkbox-style fields are only checked at submit time."""
        return self.field_type not in ("checkbox_group", "boolean")

    def empty_value(self) -> Any:
        if self.field_type == "checkbox_group":
            return []
        if self.field_type == "boolean":
            return False
        if self.field_type == "file":
            return None
        return ""

    def check(self, value: Any, snapshot: FormSnapshot) -> str:
        if self.rule is None:
            return ""
        return self.rule(self.name, value, snapshot)


@dataclass(frozen=True)
class FormSchema:
    """Complete schema for one form."""

    schema_id: str
    title: str
    fields: tuple[FieldSpec, ...] = field(default_factory=tuple)

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]

    def get(self, name: str) -> FieldSpec | None:
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def initial_values(self) -> dict[str, Any]:
        return {f.name: f.empty_value() for f in self.fields}


_DEFAULT_POLICE_STATIONS = ["Station A", "Station B", "Station C"]
_DEFAULT_INFO_TYPES = ["Public Informed", "Victim Informed", "Criminal Informed"]
_DEFAULT_RANKS = ["Constable", "Head Constable", "ASI", "PSI", "API", "PI"]
_DEFAULT_IPC_SECTIONS = ["1860", "373", "353", "420", "302"]


def _required_text(name: str, label: str, message: str, field_type: str = "text") -> FieldSpec:
    return FieldSpec(name, label, field_type, required=True, rule=required(message))


def _required_select(name: str, label: str, message: str, options: list[str]) -> FieldSpec:
    return FieldSpec(name, label, "select", required=True, options=tuple(options), rule=required(message))


def registration_schema() -> FormSchema:
    return FormSchema(
        schema_id="registration",
        title="Create Your Account",
        fields=(
            FieldSpec("firstName", "First Name", required=True, rule=name_rule("First name", True)),
            FieldSpec("middleName", "Middle Name", rule=name_rule("Middle name", False)),
            FieldSpec("lastName", "Last Name", required=True, rule=name_rule("Last name", True)),
            FieldSpec("mobileNumber", "Mobile Number", required=True, rule=MOBILE_RULE),
            FieldSpec(
                "photo", "Profile Photo", "file", required=True, rule=PHOTO_RULE,
                help_text="JPEG or PNG, under 1MB",
            ),
            FieldSpec("email", "Email", "email", required=True, rule=EMAIL_RULE),
            FieldSpec(
                "password", "Password", "password", required=True, rule=PASSWORD_RULE,
                help_text="At least 8 characters with uppercase, lowercase and numbers",
            ),
            FieldSpec(
                "confirmPassword", "Confirm Password", "password", required=True,
                rule=CONFIRM_PASSWORD_RULE,
            ),
        ),
    )


def login_schema() -> FormSchema:
    return FormSchema(
        schema_id="login",
        title="Welcome Back",
        fields=(
            FieldSpec("email", "Email", "email", required=True, rule=EMAIL_RULE),
            FieldSpec(
                "password", "Password", "password", required=True,
                rule=required("Password is required"),
            ),
            FieldSpec("captcha", "Captcha", required=True, rule=CAPTCHA_RULE),
            FieldSpec("rememberMe", "Remember me", "boolean"),
        ),
    )


def fir_schema() -> FormSchema:
    """FIR intake form. Select options honour data/config/fir-portal.json."""
    stations = get_option_list(TOOL_NAME, "police_stations", _DEFAULT_POLICE_STATIONS)
    info_types = get_option_list(TOOL_NAME, "info_types", _DEFAULT_INFO_TYPES)
    ranks = get_option_list(TOOL_NAME, "officer_ranks", _DEFAULT_RANKS)
    ipc_sections = get_option_list(TOOL_NAME, "ipc_sections", _DEFAULT_IPC_SECTIONS)

    return FormSchema(
        schema_id="fir",
        title="FIR Form",
        fields=(
            _required_text("district", "District", "District is required"),
            _required_select("policeStation", "Police Station", "Police station is required", stations),
            _required_text("act", "ACT", "ACT is required"),
            FieldSpec(
                "ipcSections", "IPC Sections", "checkbox_group", required=True,
                options=tuple(ipc_sections),
                rule=required("At least one IPC section must be selected"),
            ),
            FieldSpec(
                "generalDiaryRef", "General Diary Reference Number", required=True,
                rule=chain(
                    required("General diary reference is required"),
                    matches(_DIARY_REF_RE, "Invalid reference format"),
                ),
                help_text="Uppercase letters, digits, '/' and '-' only",
            ),
            _required_select("infoType", "Type of Information", "Information type is required", info_types),
            _required_text("placeOccurrence", "Place of Occurrence", "Place of occurrence is required", "textarea"),
            FieldSpec(
                "complainantName", "Complainant Name", required=True,
                rule=chain(
                    required("Complainant name is required"),
                    min_length(3, "Name must be at least 3 characters"),
                ),
            ),
            FieldSpec(
                "complainantDob", "Date of Birth", "date", required=True,
                rule=chain(required("Date of birth is required"), _date_in_past),
            ),
            _required_text("complainantNationality", "Nationality", "Nationality is required"),
            FieldSpec(
                "complainantAadhaar", "Aadhaar Number", required=True,
                rule=chain(
                    required("Aadhaar number is required"),
                    matches(_AADHAAR_RE, "Aadhaar must be 12 digits"),
                ),
            ),
            _required_text("complainantOccupation", "Occupation", "Occupation is required"),
            FieldSpec(
                "complainantMobile", "Mobile Number", required=True,
                rule=chain(
                    required("Mobile number is required"),
                    matches(_COMPLAINANT_MOBILE_RE, "Invalid mobile number"),
                ),
            ),
            FieldSpec(
                "complainantAddress", "Address", "textarea", required=True,
                rule=chain(
                    required("Address is required"),
                    min_length(10, "Address must be at least 10 characters"),
                ),
            ),
            _required_text("suspectName", "Suspect Name", "Suspect name is required"),
            _required_text("suspectAddress", "Suspect Address", "Suspect address is required", "textarea"),
            _required_text("enquiryOfficerName", "Enquiry Officer Name", "Enquiry officer name is required"),
            _required_select("enquiryOfficerRank", "Enquiry Officer Rank", "Enquiry officer rank is required", ranks),
        ),
    )


def profile_schema() -> FormSchema:
    """Profile editor: every field optional, checked only when filled in."""
    return FormSchema(
        schema_id="profile",
        title="Update Profile",
        fields=(
            FieldSpec("firstName", "First Name", rule=name_rule("First name", False)),
            FieldSpec("middleName", "Middle Name", rule=name_rule("Middle name", False)),
            FieldSpec("lastName", "Last Name", rule=name_rule("Last name", False)),
            FieldSpec(
                "mobileNumber", "Mobile Number",
                rule=optional(matches(_MOBILE_RE, "Mobile number must be 10 digits")),
            ),
            FieldSpec("photo", "Profile Photo", "file", rule=optional(_photo_checks)),
            FieldSpec(
                "password", "New Password", "password", rule=optional(_password_strength),
                help_text="Leave blank to keep your current password",
            ),
        ),
    )


SCHEMA_BUILDERS: dict[str, Callable[[], FormSchema]] = {
    "registration": registration_schema,
    "login": login_schema,
    "fir": fir_schema,
    "profile": profile_schema,
}


def get_schema(schema_id: str) -> FormSchema:
    """Return the schema for *schema_id*; raises KeyError for unknown ids."""
    try:
        builder = SCHEMA_BUILDERS[schema_id]
    except KeyError:
        raise KeyError(f"Unknown form schema: {schema_id}") from None
    return builder()
