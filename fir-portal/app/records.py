"""FIR records as returned by the backend, plus the report table logic.

The report view filters, sorts and pages the full record list on the
client: the backend only offers "list everything".
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class FirRecord(BaseModel):
    """One FIR. Field names follow the backend's JSON keys."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    firNumber: str = ""
    dateTime: str = ""
    district: str = ""
    policeStation: str = ""
    act: str = ""
    ipcSections: list[str] = Field(default_factory=list)
    generalDiaryRef: str = ""
    infoType: str = ""
    placeOccurrence: str = ""
    complainantName: str = ""
    complainantDob: str = ""
    complainantNationality: str = ""
    complainantAadhaar: str = ""
    complainantOccupation: str = ""
    complainantMobile: str = ""
    complainantAddress: str = ""
    suspectName: str = ""
    suspectAddress: str = ""
    enquiryOfficerName: str = ""
    enquiryOfficerRank: str = ""

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value: Any) -> Any:
        if value is None:
            return None
        return str(value)

    @field_validator("ipcSections", mode="before")
    @classmethod
    def _sections_as_list(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [part.strip() for part in value.split(",") if part.strip()]
        return [str(v) for v in value]

    @field_validator(
        "firNumber", "dateTime", "district", "policeStation", "act",
        "generalDiaryRef", "infoType", "placeOccurrence", "complainantName",
        "complainantDob", "complainantNationality", "complainantAadhaar",
        "complainantOccupation", "complainantMobile", "complainantAddress",
        "suspectName", "suspectAddress", "enquiryOfficerName",
        "enquiryOfficerRank",
        mode="before",
    )
    @classmethod
    def _none_as_blank(cls, value: Any) -> Any:
        return "" if value is None else str(value)

    def formatted_datetime(self) -> str:
        if not self.dateTime:
            return ""
        try:
            return datetime.fromisoformat(self.dateTime.replace("Z", "+00:00")).strftime("%d/%m/%Y, %H:%M:%S")
        except ValueError:
            return self.dateTime


def parse_records(raw: list[dict]) -> list[FirRecord]:
    return [FirRecord.model_validate(item) for item in raw if isinstance(item, dict)]


# ---------------------------------------------------------------------------
# Search / sort / paginate
# ---------------------------------------------------------------------------

def _searchable_values(record: FirRecord) -> list[str]:
    values = []
    for value in record.model_dump().values():
        if isinstance(value, list):
            value = ", ".join(str(v) for v in value)
        if value:
            values.append(str(value))
    return values


def search(records: list[FirRecord], term: str) -> list[FirRecord]:
    """Case-insensitive substring match against every non-empty field."""
    needle = term.strip().lower()
    if not needle:
        return list(records)
    return [
        r for r in records
        if any(needle in value.lower() for value in _searchable_values(r))
    ]


@dataclass(frozen=True)
class SortState:
    key: str | None = None
    direction: str = "ascending"


def next_sort(state: SortState, key: str) -> SortState:
    """Clicking the active ascending column flips it; anything else sorts ascending."""
    if state.key == key and state.direction == "ascending":
        return SortState(key, "descending")
    return SortState(key, "ascending")


def _sort_key(record: FirRecord, key: str) -> tuple:
    value = getattr(record, key, None)
    if value is None and record.model_extra:
        value = record.model_extra.get(key)
    if isinstance(value, list):
        value = ", ".join(value)
    if value is None or value == "":
        return (0, "")
    return (1, str(value).lower())


def sort_records(records: list[FirRecord], state: SortState) -> list[FirRecord]:
    if not state.key:
        return list(records)
    return sorted(
        records,
        key=lambda r: _sort_key(r, state.key),
        reverse=state.direction == "descending",
    )


@dataclass(frozen=True)
class Page:
    items: list[FirRecord]
    page: int
    total_pages: int
    total_items: int


def paginate(records: list[FirRecord], page: int, per_page: int = 10) -> Page:
    """Slice out one page; out-of-range page numbers are clamped."""
    total_pages = math.ceil(len(records) / per_page) if records else 0
    page = max(1, min(page, total_pages or 1))
    start = (page - 1) * per_page
    return Page(records[start:start + per_page], page, total_pages, len(records))


# ---------------------------------------------------------------------------
# Export rows
# ---------------------------------------------------------------------------

EXPORT_COLUMNS: list[tuple[str, str]] = [
    ("FIR Number", "firNumber"),
    ("District", "district"),
    ("Police Station", "policeStation"),
    ("ACT", "act"),
    ("IPC Sections", "ipcSections"),
    ("Date & Time", "dateTime"),
    ("General Diary Ref", "generalDiaryRef"),
    ("Info Type", "infoType"),
    ("Place of Occurrence", "placeOccurrence"),
    ("Complainant Name", "complainantName"),
    ("Complainant DOB", "complainantDob"),
    ("Complainant Nationality", "complainantNationality"),
    ("Complainant Aadhaar", "complainantAadhaar"),
    ("Complainant Occupation", "complainantOccupation"),
    ("Complainant Mobile", "complainantMobile"),
    ("Complainant Address", "complainantAddress"),
    ("Suspect Name", "suspectName"),
    ("Suspect Address", "suspectAddress"),
    ("Enquiry Officer Name", "enquiryOfficerName"),
    ("Enquiry Officer Rank", "enquiryOfficerRank"),
]

_NA_WHEN_BLANK = {"suspectName", "suspectAddress"}


def export_headers() -> list[str]:
    return [label for label, _key in EXPORT_COLUMNS]


def table_rows(records: list[FirRecord]) -> list[list[str]]:
    """Rows in EXPORT_COLUMNS order, formatted for a spreadsheet or PDF."""
    rows = []
    for record in records:
        row = []
        for _label, key in EXPORT_COLUMNS:
            if key == "ipcSections":
                cell = ", ".join(record.ipcSections)
            elif key == "dateTime":
                cell = record.formatted_datetime()
            else:
                cell = getattr(record, key) or ""
            if key in _NA_WHEN_BLANK and not cell:
                cell = "N/A"
            row.append(cell)
        rows.append(row)
    return rows
