"""Tests for fir-portal/app/form_engine.py: form state and submission gating."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest

from app.form_engine import AGGREGATE_ERROR, FormEngine, UnknownFieldError
from app.validation import fir_schema, login_schema, registration_schema
from shared.api_client import ApiError


@pytest.fixture()
def fir_engine(notifier, today):
    return FormEngine(fir_schema(), notifier=notifier, context={"today": today})


@pytest.fixture()
def reg_engine(notifier):
    return FormEngine(registration_schema(), notifier=notifier, failure_message="Registration failed")


def _fill(engine, values):
    for name, value in values.items():
        engine.set_field(name, value)


# ── Field events ─────────────────────────────────────────────────────────


class TestSetField:
    def test_updates_value(self, fir_engine):
        fir_engine.set_field("district", "Pune")
        assert fir_engine.values["district"] == "Pune"

    def test_unknown_field_raises(self, fir_engine):
        with pytest.raises(UnknownFieldError):
            fir_engine.set_field("nope", "x")
        with pytest.raises(KeyError):
            fir_engine.touch_field("nope")

    def test_clears_error_without_revalidating(self, fir_engine):
        fir_engine.set_field("complainantAadhaar", "12345")
        assert fir_engine.touch_field("complainantAadhaar") == "Aadhaar must be 12 digits"

        # Still invalid, but typing clears the message until the next blur.
        fir_engine.set_field("complainantAadhaar", "123456")
        assert "complainantAadhaar" not in fir_engine.errors
        assert fir_engine.touch_field("complainantAadhaar") == "Aadhaar must be 12 digits"

    def test_checkbox_toggles(self, fir_engine):
        fir_engine.set_field("ipcSections", "420")
        fir_engine.set_field("ipcSections", "302")
        assert sorted(fir_engine.values["ipcSections"]) == ["302", "420"]
        fir_engine.set_field("ipcSections", "420")
        assert fir_engine.values["ipcSections"] == ["302"]

    def test_checkbox_list_replaces(self, fir_engine):
        fir_engine.set_field("ipcSections", "420")
        fir_engine.set_field("ipcSections", ["373", "353", "373"])
        assert fir_engine.values["ipcSections"] == ["373", "353"]

    def test_checkbox_none_clears_selection(self, fir_engine):
        fir_engine.set_field("ipcSections", ["420", "302"])
        fir_engine.set_field("ipcSections", None)
        assert fir_engine.values["ipcSections"] == []
        assert fir_engine.validate_all() is False
        assert fir_engine.errors["ipcSections"] == "At least one IPC section must be selected"

    def test_checkbox_blank_option_ignored(self, fir_engine):
        fir_engine.set_field("ipcSections", "420")
        fir_engine.set_field("ipcSections", "")
        fir_engine.set_field("ipcSections", "   ")
        assert fir_engine.values["ipcSections"] == ["420"]
        fir_engine.set_field("ipcSections", ["", None, "353"])
        assert fir_engine.values["ipcSections"] == ["353"]

    def test_other_fields_untouched(self, fir_engine):
        fir_engine.set_field("complainantMobile", "123")
        fir_engine.touch_field("complainantMobile")
        fir_engine.set_field("district", "Pune")
        assert fir_engine.errors["complainantMobile"] == "Invalid mobile number"


class TestTouchField:
    def test_marks_touched_and_validates(self, fir_engine):
        fir_engine.set_field("complainantMobile", "98765432a1")
        assert fir_engine.touch_field("complainantMobile") == "Invalid mobile number"
        assert "complainantMobile" in fir_engine.touched
        assert fir_engine.has_error("complainantMobile")

    def test_valid_value_clears(self, fir_engine):
        fir_engine.set_field("complainantMobile", "9876543210")
        assert fir_engine.touch_field("complainantMobile") == ""
        assert fir_engine.is_valid("complainantMobile")
        assert not fir_engine.has_error("complainantMobile")

    def test_checkbox_group_not_validated_on_blur(self, fir_engine):
        assert fir_engine.touch_field("ipcSections") == ""
        assert "ipcSections" in fir_engine.touched
        assert "ipcSections" not in fir_engine.errors

    def test_dob_tomorrow(self, fir_engine, today):
        fir_engine.set_field("complainantDob", "2024-06-02")
        assert fir_engine.touch_field("complainantDob") == "Date of birth must be in the past"
        fir_engine.set_field("complainantDob", "1990-01-01")
        assert fir_engine.touch_field("complainantDob") == ""

    def test_confirm_password_rechecked_after_password_change(self, reg_engine):
        reg_engine.set_field("password", "Secret123")
        reg_engine.set_field("confirmPassword", "Secret123")
        assert reg_engine.touch_field("confirmPassword") == ""

        reg_engine.set_field("password", "Secret456")
        assert reg_engine.touch_field("confirmPassword") == "Passwords do not match"

    def test_untouched_field_hides_error(self, fir_engine):
        fir_engine.validate_all()
        assert fir_engine.errors["district"] == "District is required"
        assert fir_engine.visible_error("district") == ""
        assert not fir_engine.has_error("district")


class TestValidateAll:
    def test_ignores_touched_state(self, fir_engine):
        assert fir_engine.validate_all() is False
        assert set(fir_engine.errors) == set(fir_engine.schema.field_names)
        assert fir_engine.touched == set()

    def test_replaces_errors(self, fir_engine, valid_fir_values):
        fir_engine.validate_all()
        _fill(fir_engine, valid_fir_values)
        assert fir_engine.validate_all() is True
        assert fir_engine.errors == {}

    def test_valid_iff_no_errors(self, fir_engine, valid_fir_values):
        _fill(fir_engine, dict(valid_fir_values, complainantAadhaar="12345"))
        assert fir_engine.validate_all() is False
        assert fir_engine.errors == {"complainantAadhaar": "Aadhaar must be 12 digits"}


# ── Submission ───────────────────────────────────────────────────────────


class TestSubmit:
    def test_invalid_form_never_calls_submitter(self, fir_engine, recorder, valid_fir_values):
        _fill(fir_engine, dict(valid_fir_values, ipcSections=[]))
        submitter = MagicMock()

        result = fir_engine.submit(submitter)

        assert result.status == "invalid"
        submitter.assert_not_called()
        assert fir_engine.errors == {"ipcSections": "At least one IPC section must be selected"}
        assert recorder.errors == [AGGREGATE_ERROR]
        assert fir_engine.touched == set(fir_engine.schema.field_names)
        assert fir_engine.visible_error("ipcSections") == "At least one IPC section must be selected"

    def test_valid_form_submits_copy(self, fir_engine, recorder, valid_fir_values):
        _fill(fir_engine, valid_fir_values)
        submitter = MagicMock(return_value={"id": 1})

        result = fir_engine.submit(submitter, "Saved")

        assert result.ok
        assert result.payload == {"id": 1}
        sent = submitter.call_args.args[0]
        assert sent == fir_engine.values
        assert sent is not fir_engine.values
        assert recorder.successes == ["Saved"]
        assert fir_engine.submitting is False

    def test_backend_failure_uses_message(self, reg_engine, recorder, valid_registration_values):
        _fill(reg_engine, valid_registration_values)
        submitter = MagicMock(side_effect=ApiError("Email already registered", 409))

        result = reg_engine.submit(submitter)

        assert result.status == "failed"
        assert result.message == "Email already registered"
        assert recorder.errors == ["Email already registered"]
        # State is kept for a retry.
        assert reg_engine.values["email"] == "ravi@example.com"
        assert reg_engine.submitting is False

    def test_backend_failure_without_message_uses_fallback(self, reg_engine, recorder, valid_registration_values):
        _fill(reg_engine, valid_registration_values)
        result = reg_engine.submit(MagicMock(side_effect=ApiError(None)))
        assert result.message == "Registration failed"
        assert recorder.errors == ["Registration failed"]

    def test_reentrant_submit_is_busy(self, fir_engine, valid_fir_values):
        _fill(fir_engine, valid_fir_values)
        inner = {}

        def submitter(values):
            inner["result"] = fir_engine.submit(second)
            return "done"

        second = MagicMock()
        result = fir_engine.submit(submitter)

        assert result.ok
        assert inner["result"].status == "busy"
        second.assert_not_called()

    def test_unmount_during_submission_discards_result(self, fir_engine, recorder, valid_fir_values):
        _fill(fir_engine, valid_fir_values)

        def submitter(values):
            fir_engine.unmount()
            return {"id": 1}

        result = fir_engine.submit(submitter, "Saved")

        assert result.status == "discarded"
        assert recorder.successes == []
        assert recorder.errors == []

    def test_unmount_during_submission_discards_failure(self, fir_engine, recorder, valid_fir_values):
        _fill(fir_engine, valid_fir_values)

        def submitter(values):
            fir_engine.unmount()
            raise ApiError("late")

        assert fir_engine.submit(submitter).status == "discarded"
        assert recorder.errors == []

    def test_submit_after_unmount(self, fir_engine):
        fir_engine.unmount()
        submitter = MagicMock()
        assert fir_engine.submit(submitter).status == "discarded"
        submitter.assert_not_called()

    def test_captcha_checked_against_context(self, notifier):
        engine = FormEngine(login_schema(), notifier=notifier, context={"captcha_text": "X7kP2"})
        _fill(engine, {"email": "a@b.co", "password": "pw", "captcha": "wrong"})
        submitter = MagicMock()
        assert engine.submit(submitter).status == "invalid"
        assert engine.errors == {"captcha": "Incorrect captcha"}
        submitter.assert_not_called()


# ── Lifecycle ────────────────────────────────────────────────────────────


class TestLifecycle:
    def test_load_record_does_not_validate(self, fir_engine, sample_fir_record):
        bad = dict(sample_fir_record, complainantAadhaar="12")
        fir_engine.load_record(bad)
        assert fir_engine.values["complainantAadhaar"] == "12"
        assert fir_engine.errors == {}
        assert fir_engine.touched == set()

    def test_load_record_ignores_unknown_keys(self, fir_engine, sample_fir_record):
        fir_engine.load_record(sample_fir_record)
        assert "firNumber" not in fir_engine.values
        assert fir_engine.values["ipcSections"] == ["420", "302"]

    def test_load_record_splits_section_string(self, fir_engine):
        fir_engine.load_record({"ipcSections": "420, 302", "district": None})
        assert fir_engine.values["ipcSections"] == ["420", "302"]
        assert fir_engine.values["district"] == ""

    def test_reset(self, fir_engine):
        fir_engine.set_field("district", "Pune")
        fir_engine.touch_field("act")
        fir_engine.reset()
        assert fir_engine.values == fir_engine.schema.initial_values()
        assert fir_engine.touched == set()
        assert fir_engine.errors == {}
