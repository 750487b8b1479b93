"""Light/dark stylesheet and navigation bar for the FIR portal.

Import `render_theme_css` and `render_nav_bar` instead of inlining CSS in
each view. Both take the explicit ``Session`` value so the theme and the
logged-in state come from one place.
"""

from __future__ import annotations

import html as html_mod

import streamlit as st

from shared.session import Session

# ---------------------------------------------------------------------------
# Shared CSS
# ---------------------------------------------------------------------------

_BASE_CSS = """\
@import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700;800&display=swap');

/* Hide Streamlit chrome */
#MainMenu, footer,
div[data-testid="stToolbar"] { display: none !important; }

.stApp {
    font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
}

/* Navigation bar */
.nav-bar {
    display: flex;
    align-items: center;
    padding: 10px 4px;
    margin: -1rem 0 1.2rem 0;
    border-bottom: 1px solid var(--fir-border);
}
.nav-title {
    flex: 1;
    font-size: 1.15rem;
    font-weight: 700;
    color: var(--fir-heading);
    letter-spacing: -0.02em;
}
.nav-user {
    font-size: 0.85rem;
    color: var(--fir-muted);
}

/* Inline field feedback */
.field-error {
    font-size: 0.78rem;
    color: #dc2626;
    margin: -6px 0 8px 2px;
}
.field-ok {
    font-size: 0.78rem;
    color: #16a34a;
    margin: -6px 0 8px 2px;
}

/* Captcha challenge */
.captcha-box {
    display: inline-block;
    font-family: 'Courier New', monospace;
    font-size: 1.4rem;
    font-weight: 700;
    letter-spacing: 0.35em;
    padding: 8px 18px;
    border-radius: 8px;
    background: var(--fir-captcha-bg);
    color: var(--fir-heading);
    text-decoration: line-through;
    user-select: none;
}

/* Dashboard cards */
.stat-card {
    background: var(--fir-card);
    border: 1px solid var(--fir-border);
    border-radius: 12px;
    padding: 16px 18px;
}
.stat-card .stat-label {
    font-size: 0.78rem;
    font-weight: 600;
    color: var(--fir-muted);
    text-transform: uppercase;
    letter-spacing: 0.04em;
}
.stat-card .stat-value {
    font-size: 1.6rem;
    font-weight: 800;
    color: var(--fir-heading);
}

/* Section labels */
.section-label {
    font-size: 0.78rem;
    font-weight: 600;
    color: var(--fir-muted);
    text-transform: uppercase;
    letter-spacing: 0.04em;
    margin-bottom: 4px;
    margin-top: 12px;
}
"""

_PALETTES = {
    "light": {
        "--fir-heading": "#1a2744",
        "--fir-muted": "#5a6a85",
        "--fir-border": "rgba(0,0,0,0.07)",
        "--fir-card": "#ffffff",
        "--fir-captcha-bg": "#e8edf6",
        "--fir-page": "linear-gradient(160deg, #f8f9fc 0%, #eef1f8 50%, #e8edf6 100%)",
    },
    "dark": {
        "--fir-heading": "#f3f4f6",
        "--fir-muted": "#9ca3af",
        "--fir-border": "rgba(255,255,255,0.12)",
        "--fir-card": "#1f2937",
        "--fir-captcha-bg": "#374151",
        "--fir-page": "linear-gradient(160deg, #111827 0%, #1f2937 100%)",
    },
}


def _palette_css(theme: str) -> str:
    palette = _PALETTES.get(theme, _PALETTES["light"])
    variables = "\n".join(f"    {k}: {v};" for k, v in palette.items())
    return f":root {{\n{variables}\n}}\n.stApp {{ background: var(--fir-page); }}\n"


def render_theme_css(session: Session, extra_css: str = "") -> None:
    """Inject the shared stylesheet for the session's theme."""
    css = _palette_css(session.theme) + _BASE_CSS
    if extra_css:
        css += "\n" + extra_css
    st.markdown(f"<style>\n{css}\n</style>", unsafe_allow_html=True)


# ---------------------------------------------------------------------------
# Navigation bar
# ---------------------------------------------------------------------------

def render_nav_bar(title: str, session: Session, user_name: str = "") -> None:
    """Render the top bar: view title on the left, who is logged in on the right."""
    right = ""
    if session.is_authenticated:
        label = user_name or "Signed in"
        right = f'<div class="nav-user">{html_mod.escape(label)}</div>'
    st.markdown(
        f'<div class="nav-bar">'
        f'    <div class="nav-title">{html_mod.escape(title)}</div>'
        f"    {right}"
        f"</div>",
        unsafe_allow_html=True,
    )


def render_field_feedback(error: str, valid: bool) -> None:
    """Show the inline error (or a small check) under a field."""
    if error:
        st.markdown(
            f'<div class="field-error">{html_mod.escape(error)}</div>',
            unsafe_allow_html=True,
        )
    elif valid:
        st.markdown('<div class="field-ok">&#10003;</div>', unsafe_allow_html=True)
