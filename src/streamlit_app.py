import logging
import re
from typing import Dict, List, Optional

import streamlit as st

from cms_translate.client import ContentfulClient
from cms_translate.config import CONFIG_FILE_NAME, Config, load_config
from cms_translate.errors import ConfigurationMissing
from cms_translate.pipeline import Plan, build_updates, plan_entry, translate_entries, translation_failures
from cms_translate.reconciler import Reconciler
from cms_translate.rich_text import count_nodes, preview_text
from cms_translate.translator import PROVIDERS, Translator
from cms_translate.walker import CollectOptions


# -----------------------------
# Logging -> Streamlit console
# -----------------------------
class StreamlitLogHandler(logging.Handler):
    """
    Mirror the translator's log into the console pane. Translation pairs
    logged by the pipeline and warnings (skipped branches, failed fields)
    are kept aside for the results section.
    """
    def __init__(self, placeholder: "st.delta_generator.DeltaGenerator", level: int = logging.INFO) -> None:
        super().__init__(level=level)
        self.placeholder = placeholder
        self._lines: List[str] = []
        self.translations: List[Dict[str, str]] = []
        self.problems: List[str] = []

    def emit(self, record: logging.LogRecord) -> None:
        try:
            msg = self.format(record)
        except Exception:  # noqa: BLE001
            msg = record.getMessage()
        self._lines.append(msg)

        # "Translating 'Hello' to 'Hallo' [de]"
        m = re.search(r"Translating '(.*)' to '(.*)' \[([A-Za-z-]+)\]", msg)
        if m:
            original, translated, language = m.groups()
            self.translations.append({"original": original, "translated": translated, "language": language})
        elif record.levelno >= logging.WARNING:
            self.problems.append(record.getMessage())

        # Keep a sensible cap so the UI stays snappy
        max_lines = 1200
        if len(self._lines) > max_lines:
            self._lines = self._lines[-max_lines:]
        self.placeholder.code("\n".join(self._lines))


def attach_console(placeholder, level: str) -> StreamlitLogHandler:
    handler = StreamlitLogHandler(placeholder)
    handler.setFormatter(logging.Formatter("%(asctime)s  %(levelname)s  %(message)s"))
    root_logger = logging.getLogger()
    for h in list(root_logger.handlers):
        root_logger.removeHandler(h)
    root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    return handler


# -----------------------------
# State helpers
# -----------------------------
def _load_base_config() -> Optional[Config]:
    try:
        return load_config(None, require_credentials=False)
    except ConfigurationMissing as exc:
        st.error(str(exc))
        return None


@st.cache_data(show_spinner=False, ttl=300)
def _entry_choices(space_id: str, token: str, environment_id: str, content_type: str) -> Dict[str, str]:
    client = ContentfulClient(space_id, token, environment_id)
    return {e.id: f"{e.title()} ({e.id})" for e in client.get_entries(content_type)}


def _candidate_label(te) -> str:
    flag = " ⚠ possible URL" if te.possible_url else ""
    existing = " (has translations)" if te.has_existing_translation else ""
    if te.is_rich_text:
        flag += f" (rich text, {count_nodes(te.value)} nodes)"
    return f"{te.field_name} · {te.entry_id}{existing}{flag}: {preview_text(te.value, 80)}"


def main() -> None:
    st.set_page_config(page_title="CMS Entry Translator", page_icon="🌐", layout="wide")
    st.markdown(
        """
        <style>
            .hero { padding: 24px 28px; margin-bottom: 8px; border-radius: 20px;
                    background: linear-gradient(180deg, rgba(124,92,255,0.25), rgba(124,92,255,0.08));
                    border: 1px solid rgba(124,92,255,0.35); }
            .hero h1 { margin: 0; font-weight: 800; }
            .hero p { margin: 4px 0 0; opacity: .75; }
            .section-title { margin: 6px 0; font-weight: 700; font-size: 1.1rem; }
            [data-testid="stCodeBlock"] pre, pre code, pre {
                white-space: pre-wrap !important;
                word-break: break-word !important;
                max-height: 420px !important;
                overflow-y: auto !important;
            }
            .stDeployButton, #MainMenu, footer { visibility: hidden !important; }
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.markdown(
        """
        <div class="hero">
            <h1>CMS Entry Translator</h1>
            <p>Finds translatable text across linked entries and rich text, translates it and saves drafts.</p>
        </div>
        """,
        unsafe_allow_html=True,
    )

    base = _load_base_config()
    if base is None:
        st.info(f"Create a {CONFIG_FILE_NAME} in the working directory and reload.")
        return

    left, right = st.columns([0.58, 0.42], gap="large")

    with left:
        st.markdown('<div class="section-title">Connection</div>', unsafe_allow_html=True)
        c1, c2 = st.columns(2)
        with c1:
            space_id = st.text_input("Space ID", value=base.space_id)
            environment_id = st.text_input("Environment", value=base.environment_id)
        with c2:
            token = st.text_input("Management Token", value=base.access_token, type="password")
            content_type = st.text_input("Content Type", value=base.starting_content_type)

        st.markdown('<div class="section-title">Translator</div>', unsafe_allow_html=True)
        c3, c4 = st.columns(2)
        with c3:
            t_opts = list(PROVIDERS)
            provider = st.selectbox(
                "Provider",
                options=t_opts,
                index=t_opts.index(base.translator) if base.translator in t_opts else 0,
                help="Use 'mock' for safe dry-runs and development.",
            )
        with c4:
            translator_api_key = st.text_input("Provider API Key", value=base.translator_api_key, type="password")
        with st.expander("Advanced", expanded=False):
            translator_endpoint = st.text_input("Translator Endpoint (optional)", value=base.translator_endpoint)
            rich_text_leaves = st.checkbox("Review rich text paragraph by paragraph", value=False)
            lvl_opts = ["DEBUG", "INFO", "WARNING", "ERROR"]
            log_level = st.selectbox("Log Level", options=lvl_opts, index=lvl_opts.index(base.log_level.upper()) if base.log_level.upper() in lvl_opts else 1)

    with right:
        st.markdown('<div class="section-title">Console & Results</div>', unsafe_allow_html=True)
        console_placeholder = st.empty()

    if not space_id or not token or not content_type:
        st.warning("Space ID, management token and content type are required.")
        return

    base.space_id, base.access_token, base.environment_id = space_id, token, environment_id
    base.starting_content_type = content_type
    base.translator, base.translator_api_key, base.translator_endpoint = provider, translator_api_key, translator_endpoint
    base.log_level = log_level
    handler = attach_console(console_placeholder, base.log_level)

    try:
        choices = _entry_choices(space_id, token, environment_id, content_type)
    except Exception as exc:  # noqa: BLE001
        st.error(f"Could not load entries: {exc}")
        return

    with left:
        st.markdown('<div class="section-title">Selection</div>', unsafe_allow_html=True)
        entry_id = st.selectbox("Entry", options=list(choices), format_func=lambda k: choices[k]) if choices else None
        locale = st.selectbox("Target locale", options=list(base.supported_locales))
        plan_clicked = st.button("Find translatable fields", use_container_width=True)

    if entry_id is None:
        st.info(f"No {content_type} entries found.")
        return

    client = ContentfulClient(space_id, token, environment_id, base.api_base_url)
    if plan_clicked:
        entry = client.get_entry(entry_id)
        if entry is None:
            st.error(f"Entry {entry_id} not found.")
            return
        options = CollectOptions(rich_text_leaves=rich_text_leaves)
        st.session_state["plan"] = plan_entry(entry, locale, base, client, options, with_tree=True)

    plan: Optional[Plan] = st.session_state.get("plan")
    if plan is None:
        return

    st.markdown("---")
    st.subheader(f"Fields for {plan.entry.title()} [{plan.locale}]")
    with st.expander("Content structure", expanded=False):
        st.code("\n".join(plan.tree))

    selected = []
    with st.form("select_form", border=False):
        for i, te in enumerate(plan.candidates):
            if st.checkbox(_candidate_label(te), value=te.should_translate(), disabled=not te.should_translate(), key=f"cand-{i}"):
                selected.append(te)
        apply_changes = st.checkbox("Save as draft (uncheck for a dry run)", value=False)
        submitted = st.form_submit_button("Translate selected fields", type="primary", use_container_width=True)

    if not submitted:
        return

    with st.status("Translating…", expanded=True):
        translator = Translator(provider, translator_api_key, base.rate_limit_qps, translator_endpoint, base.source_locale)
        translated = translate_entries(selected, translator)
        updates = build_updates(translated)
        result = None
        if apply_changes and updates:
            result = Reconciler(base, client).apply(plan.entry, updates, plan.locale, translation_failures(selected))

    st.subheader("Translation Results")
    for t in handler.translations:
        st.markdown(f"**{t['language'].upper()}** “{t['original']}” → “{t['translated']}”")
    if handler.problems:
        with st.expander(f"Warnings ({len(handler.problems)})", expanded=False):
            st.code("\n".join(handler.problems))

    if result is not None:
        if result.has_changes:
            st.success(f"Saved {len(result.updated_entries)} entries as draft. Review them before publishing.")
        for failed_id, failures in result.failures.items():
            for failure in failures:
                st.error(f"{failed_id} · {failure.field_name or '(entry)'}: {failure.error}")
        if result.failure_log_path:
            st.info(f"Failures were saved to {result.failure_log_path}")
    else:
        st.info("Dry run completed. Enable **Save as draft** to write the translations.")
    st.session_state.pop("plan", None)


if __name__ == "__main__":
    main()
