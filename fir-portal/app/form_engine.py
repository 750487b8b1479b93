"""Form state and validation engine shared by every portal form.

A ``FormEngine`` owns three pieces of state for one form instance:

- ``values``  -- field name -> current value
- ``touched`` -- fields the user has left at least once
- ``errors``  -- field name -> message, absent when the field is valid

Typing into a field (``set_field``) clears that field's error straight
away without re-checking it; leaving a field (``touch_field``) re-runs its
rule; ``submit`` checks everything and only then calls the backend.

Only one submission runs at a time. ``unmount`` marks the engine as torn
down, after which a late backend response is dropped on the floor.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from app.validation import FieldSpec, FormSchema, FormSnapshot

import sys as _sys
_sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))
from shared.api_client import ApiError

logger = logging.getLogger(__name__)

AGGREGATE_ERROR = "Please fix the errors in the form"


class UnknownFieldError(KeyError):
    """Raised when a caller names a field the form schema doesn't have."""


def _noop(message: str) -> None:
    return None


@dataclass
class Notifier:
    """Where user-facing notifications go (toasts in the UI, a list in tests)."""

    success: Callable[[str], None] = _noop
    error: Callable[[str], None] = _noop


@dataclass
class SubmitResult:
    """Outcome of ``FormEngine.submit``.

    status is one of: submitted, invalid, failed, busy, discarded.
    """

    status: str
    payload: Any = None
    message: str = ""
    error: ApiError | None = None

    @property
    def ok(self) -> bool:
        return self.status == "submitted"


@dataclass
class FormEngine:
    schema: FormSchema
    notifier: Notifier = field(default_factory=Notifier)
    failure_message: str = "Submission failed"
    context: dict[str, Any] = field(default_factory=dict)
    values: dict[str, Any] = field(init=False)
    touched: set[str] = field(init=False, default_factory=set)
    errors: dict[str, str] = field(init=False, default_factory=dict)
    submitting: bool = field(init=False, default=False)
    mounted: bool = field(init=False, default=True)

    def __post_init__(self) -> None:
        self.values = self.schema.initial_values()

    # ── Helpers ──────────────────────────────────────────────────────────

    def _spec(self, name: str) -> FieldSpec:
        spec = self.schema.get(name)
        if spec is None:
            raise UnknownFieldError(f"{self.schema.schema_id} form has no field {name!r}")
        return spec

    def snapshot(self) -> FormSnapshot:
        return FormSnapshot(self.values, self.context)

    def _record(self, name: str, error: str) -> None:
        if error:
            self.errors[name] = error
        else:
            self.errors.pop(name, None)

    # ── Field events ─────────────────────────────────────────────────────

    def set_field(self, name: str, value: Any) -> None:
        """Update a value and optimistically clear that field's error.

        For checkbox groups a single option toggles in or out of the
        selection; passing a list replaces the selection and ``None``
        clears it. A blank option is ignored.
        """
        spec = self._spec(name)
        if spec.field_type == "checkbox_group":
            if value is None:
                self.values[name] = []
            elif isinstance(value, (list, tuple, set, frozenset)):
                self.values[name] = [
                    v for v in dict.fromkeys(value) if not _is_blank(v)
                ]
            elif _is_blank(value):
                pass
            else:
                selected = list(self.values.get(name) or [])
                if value in selected:
                    selected.remove(value)
                else:
                    selected.append(value)
                self.values[name] = selected
        else:
            self.values[name] = value
        self.errors.pop(name, None)

    def touch_field(self, name: str) -> str:
        """Mark a field as visited and re-check it. Returns its current error."""
        spec = self._spec(name)
        self.touched.add(name)
        if not spec.validates_on_blur:
            return self.errors.get(name, "")
        self._record(name, spec.check(self.values.get(name), self.snapshot()))
        return self.errors.get(name, "")

    def validate_all(self) -> bool:
        """Check every field regardless of touched state; True when valid."""
        snapshot = self.snapshot()
        errors: dict[str, str] = {}
        for spec in self.schema.fields:
            error = spec.check(self.values.get(spec.name), snapshot)
            if error:
                errors[spec.name] = error
        self.errors = errors
        return not errors

    # ── Display helpers ──────────────────────────────────────────────────

    def has_error(self, name: str) -> bool:
        return name in self.touched and bool(self.errors.get(name))

    def is_valid(self, name: str) -> bool:
        return name in self.touched and not self.errors.get(name)

    def visible_error(self, name: str) -> str:
        """The error to show under a field, or "" if the user hasn't reached it."""
        return self.errors.get(name, "") if name in self.touched else ""

    # ── Lifecycle ────────────────────────────────────────────────────────

    def load_record(self, record: Mapping[str, Any]) -> None:
        """Pre-populate from a stored record (edit mode) without validating it."""
        values = self.schema.initial_values()
        for spec in self.schema.fields:
            if spec.name not in record or record[spec.name] is None:
                continue
            value = record[spec.name]
            if spec.field_type == "checkbox_group":
                value = [str(v) for v in _as_list(value)]
            values[spec.name] = value
        self.values = values
        self.touched = set()
        self.errors = {}

    def reset(self) -> None:
        self.values = self.schema.initial_values()
        self.touched = set()
        self.errors = {}

    def unmount(self) -> None:
        self.mounted = False

    # ── Submission ───────────────────────────────────────────────────────

    def submit(
        self,
        submitter: Callable[[dict[str, Any]], Any],
        success_message: str = "",
    ) -> SubmitResult:
        """Validate everything, then hand the values to *submitter*.

        *submitter* performs the backend call and raises ``ApiError`` on
        failure. Nothing is sent when any field is invalid.
        """
        if not self.mounted:
            return SubmitResult("discarded")
        if self.submitting:
            return SubmitResult("busy")

        self.touched.update(self.schema.field_names)
        if not self.validate_all():
            self.notifier.error(AGGREGATE_ERROR)
            return SubmitResult("invalid", message=AGGREGATE_ERROR)

        self.submitting = True
        try:
            payload = submitter(dict(self.values))
        except ApiError as exc:
            if not self.mounted:
                logger.info("Dropping %s submission failure after unmount", self.schema.schema_id)
                return SubmitResult("discarded", error=exc)
            message = exc.message or self.failure_message
            self.notifier.error(message)
            return SubmitResult("failed", message=message, error=exc)
        finally:
            self.submitting = False

        if not self.mounted:
            logger.info("Dropping %s submission result after unmount", self.schema.schema_id)
            return SubmitResult("discarded", payload=payload)
        if success_message:
            self.notifier.success(success_message)
        return SubmitResult("submitted", payload=payload, message=success_message)


def _as_list(value: Any) -> Iterable[Any]:
    if isinstance(value, (list, tuple, set, frozenset)):
        return value
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
