"""FastAPI service for the FIR portal's form rules and report export.

Exposes the same field definitions and validation rules the Streamlit UI
uses, so the backend (or any other client) can check a payload exactly the
way the portal does, and renders report exports server-side.
"""

from __future__ import annotations

from typing import Any

from fastapi import FastAPI, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel, Field

from app.exporter import ExportError, export_excel, export_pdf
from app.form_engine import FormEngine
from app.records import parse_records
from app.validation import SCHEMA_BUILDERS, UploadedFile, get_schema, parse_date

app = FastAPI(title="FIR Portal Forms API")


# ---------------------------------------------------------------------------
# Request / response models
# ---------------------------------------------------------------------------

class ValidateRequest(BaseModel):
    """Payload for validating one form's values."""

    data: dict[str, Any] = Field(default_factory=dict)
    context: dict[str, Any] = Field(default_factory=dict)


class ExportRequest(BaseModel):
    """Payload for exporting report records."""

    records: list[dict[str, Any]] = Field(default_factory=list)
    format: str = "xlsx"  # "xlsx" or "pdf"


_MEDIA_TYPES = {
    "xlsx": "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "pdf": "application/pdf",
}


def _coerce_photo(value: Any) -> Any:
    """JSON can't carry a file, so photos arrive as {name, size, content_type}."""
    if isinstance(value, dict):
        try:
            return UploadedFile(
                name=str(value.get("name", "")),
                size=int(value["size"]),
                content_type=str(value["content_type"]),
            )
        except (KeyError, TypeError, ValueError):
            return None
    return value


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@app.get("/api/forms")
def list_forms() -> list[dict[str, Any]]:
    """List every form schema with its field names."""
    forms = []
    for schema_id in SCHEMA_BUILDERS:
        schema = get_schema(schema_id)
        forms.append(
            {
                "schema_id": schema.schema_id,
                "title": schema.title,
                "fields": schema.field_names,
            }
        )
    return forms


@app.get("/api/forms/{schema_id}/fields")
def get_form_fields(schema_id: str) -> dict[str, Any]:
    """Field definitions for one form: type, label, required flag, options."""
    if schema_id not in SCHEMA_BUILDERS:
        raise HTTPException(status_code=404, detail=f"Unknown form: {schema_id}")
    schema = get_schema(schema_id)
    return {
        "schema_id": schema.schema_id,
        "title": schema.title,
        "fields": [
            {
                "name": f.name,
                "label": f.label,
                "field_type": f.field_type,
                "required": f.required,
                "options": list(f.options),
                "help_text": f.help_text,
            }
            for f in schema.fields
        ],
    }


@app.post("/api/forms/{schema_id}/validate")
def validate_form(schema_id: str, request: ValidateRequest) -> dict[str, Any]:
    """Run every rule of the form against the submitted values.

    Unknown keys in ``data`` are ignored. ``context`` may carry
    ``captcha_text`` (login) or ``today`` (FIR date-of-birth check); a
    ``today`` that isn't an ISO date is rejected with 422.
    """
    if schema_id not in SCHEMA_BUILDERS:
        raise HTTPException(status_code=404, detail=f"Unknown form: {schema_id}")
    today = request.context.get("today")
    if today is not None and parse_date(today) is None:
        raise HTTPException(
            status_code=422,
            detail=f"context.today must be an ISO date, got {today!r}",
        )

    engine = FormEngine(get_schema(schema_id), context=dict(request.context))
    for name, value in request.data.items():
        spec = engine.schema.get(name)
        if spec is None:
            continue
        if spec.field_type == "file":
            value = _coerce_photo(value)
        engine.set_field(name, value)

    valid = engine.validate_all()
    return {"schema_id": schema_id, "valid": valid, "errors": engine.errors}


@app.post("/api/reports/export")
def export_report(request: ExportRequest) -> Response:
    """Render the given records as an Excel workbook or a PDF report."""
    fmt = request.format.lower()
    if fmt not in _MEDIA_TYPES:
        raise HTTPException(
            status_code=400,
            detail=f"Export format '{request.format}' is not supported.",
        )

    records = parse_records(request.records)
    try:
        content = export_pdf(records) if fmt == "pdf" else export_excel(records)
    except ExportError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    return Response(
        content=content,
        media_type=_MEDIA_TYPES[fmt],
        headers={"Content-Disposition": f'attachment; filename="firs.{fmt}"'},
    )
