"""Fixtures for the fir-portal app tests.

Puts fir-portal/ on sys.path so ``app.*`` imports resolve, clears cached
``app.*`` modules before each test file is collected, and redirects every
file the app writes (session, option overrides) into tmp_path.
"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

_TOOL_DIR = str(Path(__file__).resolve().parent.parent.parent / "fir-portal")
if _TOOL_DIR not in sys.path:
    sys.path.insert(0, _TOOL_DIR)


def pytest_collect_file(parent, file_path):
    if file_path.suffix == ".py" and file_path.name.startswith("test_"):
        for key in list(sys.modules.keys()):
            if key == "app" or key.startswith("app."):
                del sys.modules[key]
    return None


@pytest.fixture(autouse=True)
def _isolate_files(tmp_path):
    import shared.config_store as config_mod
    import shared.session as session_mod

    config_dir = tmp_path / "config"
    config_dir.mkdir(parents=True)
    with patch.object(config_mod, "CONFIG_DIR", config_dir), \
         patch.object(session_mod, "_CONFIG_DIR", config_dir), \
         patch.object(session_mod, "_SESSION_FILE", config_dir / "session.json"):
        yield config_dir


class RecordingNotifier:
    """Collects notifications so tests can assert on them."""

    def __init__(self):
        self.successes: list[str] = []
        self.errors: list[str] = []

    def as_notifier(self):
        from app.form_engine import Notifier
        return Notifier(success=self.successes.append, error=self.errors.append)


@pytest.fixture()
def recorder():
    return RecordingNotifier()


@pytest.fixture()
def notifier(recorder):
    return recorder.as_notifier()


@pytest.fixture()
def backend():
    """A BackendClient stand-in; configure return values per test."""
    from shared.api_client import BackendClient
    return MagicMock(spec=BackendClient)


@pytest.fixture()
def png_photo():
    from app.validation import UploadedFile
    return UploadedFile(name="me.png", size=20_000, content_type="image/png", data=b"\x89PNG")


@pytest.fixture()
def today():
    return date(2024, 6, 1)


@pytest.fixture()
def valid_fir_values():
    """A complete, valid FIR intake form."""
    return {
        "district": "Pune",
        "policeStation": "Station A",
        "act": "IPC",
        "ipcSections": ["420"],
        "generalDiaryRef": "GD/2024-117",
        "infoType": "Public Informed",
        "placeOccurrence": "MG Road",
        "complainantName": "Ravi Kumar",
        "complainantDob": "1990-01-01",
        "complainantNationality": "Indian",
        "complainantAadhaar": "123456789012",
        "complainantOccupation": "Shopkeeper",
        "complainantMobile": "9876543210",
        "complainantAddress": "14 Station Road, Pune",
        "suspectName": "Unknown",
        "suspectAddress": "Unknown",
        "enquiryOfficerName": "S. Patil",
        "enquiryOfficerRank": "PSI",
    }


@pytest.fixture()
def valid_registration_values(png_photo):
    return {
        "firstName": "Ravi",
        "middleName": "",
        "lastName": "Kumar",
        "mobileNumber": "9876543210",
        "photo": png_photo,
        "email": "ravi@example.com",
        "password": "Secret123",
        "confirmPassword": "Secret123",
    }
