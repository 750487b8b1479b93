"""FIR Portal -- Streamlit dashboard.

Client UI for the FIR record-management backend: registration, captcha
login, FIR intake (create and edit), a searchable report table with
Excel/PDF export, and the user profile.

Run with:  streamlit run fir-portal/app/dashboard.py
"""

from __future__ import annotations

import html as html_mod
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")

import streamlit as st

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))
sys.path.insert(0, str(Path(__file__).resolve().parent.parent.parent))

from app.exporter import ExportError, export_excel, export_pdf
from app.form_engine import FormEngine, Notifier
from app.forms import (
    FirIntakeForm,
    LoginForm,
    ProfileForm,
    RegistrationForm,
    fetch_current_user,
)
from app.records import (
    SortState,
    next_sort,
    paginate,
    parse_records,
    search,
    sort_records,
)
from app.validation import FieldSpec, UploadedFile

import shared.session as session_mod
from shared.api_client import ApiError, AuthExpiredError, BackendClient
from shared.settings import get_settings
from shared.theme import render_field_feedback, render_nav_bar, render_theme_css

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# ── Page config ──────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="FIR Portal",
    layout="wide",
    initial_sidebar_state="expanded",
)

# ── Session state defaults ───────────────────────────────────────────────────

_DEFAULTS: dict = {
    "view": "home",
    "fir_edit_id": None,
    "controllers": {},
    "report_search": "",
    "report_sort": SortState(),
    "report_page": 1,
    "confirm_delete": None,
    "selected_fir": None,
    "_flash": [],
}
for _k, _v in _DEFAULTS.items():
    if _k not in st.session_state:
        st.session_state[_k] = _v

_PUBLIC_VIEWS = {"home", "login", "register"}


# ── Notifications ────────────────────────────────────────────────────────────

def _flash(kind: str, message: str) -> None:
    st.session_state["_flash"].append((kind, message))


NOTIFIER = Notifier(
    success=lambda msg: _flash("success", msg),
    error=lambda msg: _flash("error", msg),
)


def _render_flash() -> None:
    for kind, message in st.session_state["_flash"]:
        st.toast(message, icon="✅" if kind == "success" else "⚠️")
    st.session_state["_flash"] = []


# ── Navigation ───────────────────────────────────────────────────────────────

def _go(view: str, fir_id: str | None = None) -> None:
    """Switch views, tearing down any form controllers that belonged to the old one."""
    for controller in st.session_state["controllers"].values():
        controller.engine.unmount()
    st.session_state["controllers"] = {}
    for key in [k for k in st.session_state if str(k).startswith("w_")]:
        del st.session_state[key]
    st.session_state["view"] = view
    st.session_state["fir_edit_id"] = fir_id


def _client(session: session_mod.Session) -> BackendClient:
    return BackendClient(token=session.token)


def _controller(key: str, factory) -> Any:
    """Return the live controller for *key*, creating (and mounting) it once."""
    controllers = st.session_state["controllers"]
    if key not in controllers:
        controller = factory()
        mount = getattr(controller, "mount", None) or getattr(controller, "load", None)
        if mount is not None:
            mount()
        _seed_widgets(controller.engine, key)
        controllers[key] = controller
    return controllers[key]


def _logout() -> None:
    session_mod.clear_session()
    NOTIFIER.success("Logged out successfully")
    _go("login")


# ── Field widgets ────────────────────────────────────────────────────────────

def _widget_key(prefix: str, name: str, option: str = "") -> str:
    return f"w_{prefix}_{name}" + (f"_{option}" if option else "")


def _seed_widgets(engine: FormEngine, prefix: str) -> None:
    """Copy engine values into widget state (new form or record loaded for editing)."""
    for spec in engine.schema.fields:
        value = engine.values.get(spec.name)
        if spec.field_type == "checkbox_group":
            for option in spec.options:
                st.session_state[_widget_key(prefix, spec.name, option)] = option in (value or [])
        elif spec.field_type == "date":
            parsed = None
            if isinstance(value, date):
                parsed = value
            elif value:
                try:
                    parsed = date.fromisoformat(str(value)[:10])
                except ValueError:
                    parsed = None
            st.session_state[_widget_key(prefix, spec.name)] = parsed
        elif spec.field_type == "boolean":
            st.session_state[_widget_key(prefix, spec.name)] = bool(value)
        elif spec.field_type != "file":
            st.session_state[_widget_key(prefix, spec.name)] = value or ""


def _on_commit(engine: FormEngine, name: str, key: str) -> None:
    # Streamlit reports a text change when the user leaves the field or presses
    # Enter, which is the blur event for our purposes.
    engine.set_field(name, st.session_state[key])
    engine.touch_field(name)


def _on_toggle(engine: FormEngine, name: str, option: str) -> None:
    engine.set_field(name, option)


def _on_flag(engine: FormEngine, name: str, key: str) -> None:
    engine.set_field(name, bool(st.session_state[key]))


def _on_photo(engine: FormEngine, name: str, key: str) -> None:
    upload = st.session_state.get(key)
    engine.set_field(name, UploadedFile.from_upload(upload) if upload is not None else None)
    engine.touch_field(name)


def _on_submit(form: Any, prefix: str) -> None:
    result = form.submit()
    if not result.ok:
        if result.status == "failed":
            _seed_widgets(form.engine, prefix)
        return
    if form.next_view == st.session_state["view"]:
        _seed_widgets(form.engine, prefix)
    else:
        _go(form.next_view)


def _on_refresh_captcha(form: LoginForm) -> None:
    form.refresh_captcha()
    st.session_state[_widget_key("login", "captcha")] = ""


def _select_options(spec: FieldSpec, current: Any) -> list[str]:
    # A stored record may carry a value that is no longer in the configured list.
    options = [""] + list(spec.options)
    if current and current not in options:
        options.append(current)
    return options


def _render_field(engine: FormEngine, spec: FieldSpec, prefix: str) -> None:
    label = spec.label + (" *" if spec.required else "")
    key = _widget_key(prefix, spec.name)
    args = (engine, spec.name, key)

    if spec.field_type in ("text", "email", "password"):
        st.text_input(
            label,
            key=key,
            type="password" if spec.field_type == "password" else "default",
            help=spec.help_text or None,
            on_change=_on_commit,
            args=args,
        )
    elif spec.field_type == "textarea":
        st.text_area(label, key=key, height=90, on_change=_on_commit, args=args)
    elif spec.field_type == "select":
        st.selectbox(
            label,
            options=_select_options(spec, st.session_state.get(key)),
            format_func=lambda v, _l=spec.label: v or f"Select {_l}",
            key=key,
            on_change=_on_commit,
            args=args,
        )
    elif spec.field_type == "date":
        st.date_input(
            label,
            key=key,
            min_value=date(1900, 1, 1),
            max_value=date(2100, 12, 31),
            on_change=_on_commit,
            args=args,
        )
    elif spec.field_type == "checkbox_group":
        st.markdown(f'<div class="section-label">{html_mod.escape(label)}</div>', unsafe_allow_html=True)
        cols = st.columns(max(len(spec.options), 1))
        for col, option in zip(cols, spec.options):
            with col:
                st.checkbox(
                    f"Section {option}",
                    key=_widget_key(prefix, spec.name, option),
                    on_change=_on_toggle,
                    args=(engine, spec.name, option),
                )
    elif spec.field_type == "file":
        st.file_uploader(
            label,
            type=["jpg", "jpeg", "png"],
            key=key,
            help=spec.help_text or None,
            on_change=_on_photo,
            args=args,
        )
    elif spec.field_type == "boolean":
        st.checkbox(spec.label, key=key, on_change=_on_flag, args=args)
        return

    render_field_feedback(engine.visible_error(spec.name), engine.is_valid(spec.name))


def _render_fields(engine: FormEngine, prefix: str, names: list[str] | None = None) -> None:
    for spec in engine.schema.fields:
        if names is None or spec.name in names:
            _render_field(engine, spec, prefix)


# ── Views ────────────────────────────────────────────────────────────────────

def view_home(session: session_mod.Session) -> None:
    render_nav_bar("FIR Portal", session)
    st.markdown("### First Information Report management")
    st.write(
        "Register complaints, track First Information Reports and export "
        "records for your station, all in one place."
    )
    if session.is_authenticated:
        st.button("Go to Dashboard", type="primary", on_click=_go, args=("dashboard",))
        return
    c1, c2, _ = st.columns([1, 1, 4])
    with c1:
        st.button("Login", type="primary", on_click=_go, args=("login",), use_container_width=True)
    with c2:
        st.button("Register", on_click=_go, args=("register",), use_container_width=True)


def view_register(session: session_mod.Session) -> None:
    render_nav_bar("Create Your Account", session)
    form: RegistrationForm = _controller(
        "register", lambda: RegistrationForm(_client(session), NOTIFIER)
    )
    engine = form.engine

    _, col, _ = st.columns([1, 2, 1])
    with col:
        c1, c2, c3 = st.columns(3)
        with c1:
            _render_fields(engine, "register", ["firstName"])
        with c2:
            _render_fields(engine, "register", ["middleName"])
        with c3:
            _render_fields(engine, "register", ["lastName"])
        if form.full_name:
            st.caption(f"Full name: {form.full_name}")
        _render_fields(
            engine,
            "register",
            ["mobileNumber", "photo", "email", "password", "confirmPassword"],
        )

        st.button(
            "Register",
            type="primary",
            disabled=engine.submitting,
            use_container_width=True,
            on_click=_on_submit,
            args=(form, "register"),
        )
        st.button("Already have an account? Log in", type="tertiary", on_click=_go, args=("login",))


def view_login(session: session_mod.Session) -> None:
    render_nav_bar("Welcome Back", session)
    form: LoginForm = _controller("login", lambda: LoginForm(_client(session), NOTIFIER))
    engine = form.engine

    _, col, _ = st.columns([1, 1.4, 1])
    with col:
        _render_fields(engine, "login", ["email", "password"])

        cap_col, btn_col = st.columns([3, 1])
        with cap_col:
            if form.captcha_text:
                st.markdown(
                    f'<div class="captcha-box">{html_mod.escape(form.captcha_text)}</div>',
                    unsafe_allow_html=True,
                )
            else:
                st.caption("Captcha unavailable")
        with btn_col:
            st.button("↻", help="Get a new captcha", on_click=_on_refresh_captcha, args=(form,))
        _render_fields(engine, "login", ["captcha", "rememberMe"])

        st.button(
            "Log In",
            type="primary",
            disabled=engine.submitting,
            use_container_width=True,
            on_click=_on_submit,
            args=(form, "login"),
        )
        st.button("Don't have an account? Register", type="tertiary", on_click=_go, args=("register",))


def view_dashboard(session: session_mod.Session) -> None:
    client = _client(session)
    user = fetch_current_user(client, NOTIFIER)
    if not session_mod.get_session().is_authenticated:
        _go("login")
        st.rerun()

    name = ""
    if user:
        name = " ".join(p for p in (user.get("firstName"), user.get("lastName")) if p)
    render_nav_bar("Dashboard", session, name)
    st.markdown(f"### Welcome{', ' + html_mod.escape(name) if name else ''}")

    try:
        records = parse_records(client.list_firs())
    except AuthExpiredError:
        session_mod.clear_session()
        _go("login")
        st.rerun()
    except ApiError:
        logger.warning("Failed to fetch dashboard stats", exc_info=True)
        NOTIFIER.error("Failed to load dashboard stats")
        records = []

    this_month = datetime.now().strftime("%Y-%m")
    stats = [
        ("Total FIRs", len(records)),
        ("Filed this month", sum(1 for r in records if r.dateTime.startswith(this_month))),
        ("Police stations", len({r.policeStation for r in records if r.policeStation})),
    ]
    cols = st.columns(len(stats))
    for col, (label, value) in zip(cols, stats):
        with col:
            st.markdown(
                f'<div class="stat-card"><div class="stat-label">{label}</div>'
                f'<div class="stat-value">{value}</div></div>',
                unsafe_allow_html=True,
            )

    st.markdown('<div class="section-label">Quick actions</div>', unsafe_allow_html=True)
    a1, a2, a3, a4 = st.columns(4)
    with a1:
        st.button("View Reports", on_click=_go, args=("report",), use_container_width=True)
    with a2:
        st.button("Create FIR", on_click=_go, args=("fir_form",), use_container_width=True)
    with a3:
        st.button("Profile", on_click=_go, args=("profile",), use_container_width=True)
    with a4:
        st.button("Logout", on_click=_logout, use_container_width=True)


_FIR_SECTIONS: list[tuple[str, list[str]]] = [
    ("Case Details", ["district", "policeStation", "act", "ipcSections", "generalDiaryRef", "infoType", "placeOccurrence"]),
    ("Complainant", [
        "complainantName", "complainantDob", "complainantNationality", "complainantAadhaar",
        "complainantOccupation", "complainantMobile", "complainantAddress",
    ]),
    ("Suspect", ["suspectName", "suspectAddress"]),
    ("Enquiry Officer", ["enquiryOfficerName", "enquiryOfficerRank"]),
]


def view_fir_form(session: session_mod.Session) -> None:
    fir_id = st.session_state["fir_edit_id"]
    key = f"fir_{fir_id or 'new'}"
    form: FirIntakeForm = _controller(
        key, lambda: FirIntakeForm(_client(session), NOTIFIER, fir_id=fir_id)
    )
    engine = form.engine
    render_nav_bar("Edit FIR" if form.is_edit else "FIR Form", session)

    for title, names in _FIR_SECTIONS:
        st.markdown(f'<div class="section-label">{title}</div>', unsafe_allow_html=True)
        left, right = st.columns(2)
        for idx, name in enumerate(names):
            with (left if idx % 2 == 0 else right):
                _render_fields(engine, key, [name])

    c1, c2, _ = st.columns([1, 1, 4])
    with c1:
        label = "Update FIR" if form.is_edit else "Submit FIR"
        st.button(
            label,
            type="primary",
            disabled=engine.submitting,
            use_container_width=True,
            on_click=_on_submit,
            args=(form, key),
        )
    with c2:
        st.button("Cancel", on_click=_go, args=("report",), use_container_width=True)


_TABLE_COLUMNS = [
    ("firNumber", "FIR No"),
    ("district", "District"),
    ("policeStation", "Police Station"),
    ("complainantName", "Complainant"),
    ("dateTime", "Date"),
]


def _sort_by(key: str) -> None:
    st.session_state["report_sort"] = next_sort(st.session_state["report_sort"], key)


def _delete_fir(session: session_mod.Session, fir_id: str) -> None:
    try:
        _client(session).delete_fir(fir_id)
    except AuthExpiredError:
        session_mod.clear_session()
        _go("login")
        return
    except ApiError:
        logger.warning("Failed to delete FIR %s", fir_id, exc_info=True)
        NOTIFIER.error("Error deleting FIR")
        return
    finally:
        st.session_state["confirm_delete"] = None
    NOTIFIER.success("FIR deleted successfully")


def view_report(session: session_mod.Session) -> None:
    render_nav_bar("FIR Reports", session)
    try:
        records = parse_records(_client(session).list_firs())
    except AuthExpiredError:
        session_mod.clear_session()
        _go("login")
        st.rerun()
    except ApiError:
        logger.warning("Failed to fetch reports", exc_info=True)
        NOTIFIER.error("Error fetching reports")
        records = []

    search_col, xl_col, pdf_col, new_col = st.columns([4, 1, 1, 1])
    with search_col:
        term = st.text_input(
            "Search", placeholder="Search any field...", label_visibility="collapsed",
        )
    if term != st.session_state["report_search"]:
        st.session_state["report_search"] = term
        st.session_state["report_page"] = 1

    with xl_col:
        st.download_button(
            "Excel",
            data=export_excel(records) if records else b"",
            file_name="firs.xlsx",
            mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            disabled=not records,
            use_container_width=True,
        )
    with pdf_col:
        try:
            pdf_bytes = export_pdf(records)
        except ExportError:
            pdf_bytes = b""
        st.download_button(
            "PDF",
            data=pdf_bytes,
            file_name="fir-reports.pdf",
            mime="application/pdf",
            disabled=not pdf_bytes,
            use_container_width=True,
        )
    with new_col:
        st.button("New FIR", type="primary", on_click=_go, args=("fir_form",), use_container_width=True)

    sort_state: SortState = st.session_state["report_sort"]
    rows = sort_records(search(records, st.session_state["report_search"]), sort_state)
    page = paginate(rows, st.session_state["report_page"], get_settings().items_per_page)
    st.session_state["report_page"] = page.page

    widths = [1.2, 1.2, 1.4, 1.6, 1.4, 2]
    header = st.columns(widths)
    for col, (key, label) in zip(header, _TABLE_COLUMNS):
        arrow = ""
        if sort_state.key == key:
            arrow = " ▲" if sort_state.direction == "ascending" else " ▼"
        with col:
            st.button(f"{label}{arrow}", key=f"sort_{key}", on_click=_sort_by, args=(key,), type="tertiary")
    with header[-1]:
        st.markdown("**Actions**")

    if not page.items:
        st.info("No FIRs found.")

    for idx, record in enumerate(page.items):
        row_key = record.id or f"row{idx}"
        cols = st.columns(widths)
        cols[0].write(record.firNumber or "N/A")
        cols[1].write(record.district)
        cols[2].write(record.policeStation)
        cols[3].write(record.complainantName)
        cols[4].write(record.formatted_datetime())
        with cols[5]:
            v, e, d = st.columns(3)
            if v.button("View", key=f"view_{row_key}"):
                st.session_state["selected_fir"] = record.model_dump()
            e.button("Edit", key=f"edit_{row_key}", disabled=not record.id, on_click=_go, args=("fir_form", record.id))
            if d.button("Delete", key=f"del_{row_key}", disabled=not record.id):
                st.session_state["confirm_delete"] = record.id

    pending = st.session_state["confirm_delete"]
    if pending:
        st.warning("Are you sure you want to delete this FIR?")
        y, n, _ = st.columns([1, 1, 6])
        y.button("Yes, delete", on_click=_delete_fir, args=(session, pending))
        n.button("Cancel", key="cancel_delete", on_click=lambda: st.session_state.update(confirm_delete=None))

    if page.total_pages > 1:
        prev_col, info_col, next_col = st.columns([1, 2, 1])
        if prev_col.button("Previous", disabled=page.page <= 1):
            st.session_state["report_page"] = page.page - 1
            st.rerun()
        info_col.caption(f"Page {page.page} of {page.total_pages} ({page.total_items} FIRs)")
        if next_col.button("Next", disabled=page.page >= page.total_pages):
            st.session_state["report_page"] = page.page + 1
            st.rerun()

    selected = st.session_state["selected_fir"]
    if selected:
        with st.expander(f"FIR {selected.get('firNumber') or selected.get('id')}", expanded=True):
            for key, value in selected.items():
                if isinstance(value, list):
                    value = ", ".join(value)
                st.markdown(f"**{key}**: {html_mod.escape(str(value or 'N/A'))}")
            st.button("Close", on_click=lambda: st.session_state.update(selected_fir=None))


def view_profile(session: session_mod.Session) -> None:
    form: ProfileForm = _controller("profile", lambda: ProfileForm(_client(session), NOTIFIER))
    user = form.user or {}
    name = " ".join(p for p in (user.get("firstName"), user.get("middleName"), user.get("lastName")) if p)
    render_nav_bar("Profile", session, name)

    photo_col, info_col = st.columns([1, 3])
    with photo_col:
        if form.photo_bytes:
            st.image(form.photo_bytes, width=160)
        else:
            st.caption("No photo")
    with info_col:
        st.markdown(f"### {html_mod.escape(name or 'Your profile')}")
        st.write(f"**Email:** {user.get('email', 'N/A')}")
        st.write(f"**Mobile:** {user.get('mobileNumber', 'N/A')}")

    with st.expander("Edit Profile"):
        _render_fields(form.engine, "profile")
        st.button(
            "Save Changes",
            type="primary",
            disabled=form.engine.submitting,
            on_click=_on_submit,
            args=(form, "profile"),
        )


_VIEWS = {
    "home": view_home,
    "register": view_register,
    "login": view_login,
    "dashboard": view_dashboard,
    "fir_form": view_fir_form,
    "report": view_report,
    "profile": view_profile,
}


# ── Sidebar ──────────────────────────────────────────────────────────────────

def render_sidebar(session: session_mod.Session) -> None:
    with st.sidebar:
        st.markdown("## FIR Portal")
        if session.is_authenticated:
            for view, label in (
                ("dashboard", "Dashboard"),
                ("fir_form", "Create FIR"),
                ("report", "Reports"),
                ("profile", "Profile"),
            ):
                st.button(label, key=f"nav_{view}", on_click=_go, args=(view,), use_container_width=True)
            st.button("Logout", key="nav_logout", on_click=_logout, use_container_width=True)
        else:
            st.button("Home", key="nav_home", on_click=_go, args=("home",), use_container_width=True)
            st.button("Login", key="nav_login", on_click=_go, args=("login",), use_container_width=True)
            st.button("Register", key="nav_register", on_click=_go, args=("register",), use_container_width=True)
        st.divider()
        dark = st.toggle("Dark mode", value=session.theme == "dark")
        if dark != (session.theme == "dark"):
            session_mod.toggle_theme()
            st.rerun()


# ── Main ─────────────────────────────────────────────────────────────────────

session = session_mod.get_session()
render_theme_css(session)

view = st.session_state["view"]
if view not in _PUBLIC_VIEWS and not session.is_authenticated:
    _go("login")
    view = "login"

render_sidebar(session)
_VIEWS.get(view, view_home)(session)
_render_flash()
