"""Shared fixtures for all tests."""

from __future__ import annotations

from pathlib import Path

import pytest


@pytest.fixture()
def tmp_config_dir(tmp_path: Path):
    """Provide a temporary config directory and patch shared modules to use it."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    return config_dir


@pytest.fixture()
def sample_fir_record():
    """A FIR record as the backend returns it from GET /api/fir/{id}."""
    return {
        "id": 42,
        "firNumber": "FIR-2024-0042",
        "dateTime": "2024-03-15T10:30:00",
        "district": "Pune",
        "policeStation": "Station B",
        "act": "IPC",
        "ipcSections": ["420", "302"],
        "generalDiaryRef": "GD/2024-117",
        "infoType": "Victim Informed",
        "placeOccurrence": "MG Road, near the bus depot",
        "complainantName": "Ravi Kumar",
        "complainantDob": "1985-07-21",
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
def sample_fir_records(sample_fir_record):
    """Three records with distinct stations, names and dates."""
    second = dict(
        sample_fir_record,
        id=43,
        firNumber="FIR-2024-0043",
        dateTime="2024-04-02T08:05:00",
        policeStation="Station A",
        ipcSections=["373"],
        complainantName="Anita Deshmukh",
        suspectName="",
        suspectAddress=None,
    )
    third = dict(
        sample_fir_record,
        id=44,
        firNumber="FIR-2024-0044",
        dateTime="2024-01-20T18:45:00",
        district="Nashik",
        policeStation="Station C",
        ipcSections=["353", "1860"],
        complainantName="Mohan Rao",
    )
    return [sample_fir_record, second, third]
