"""
Journal Chat Frontend

Streamlit interface for asking questions about your journal. Each answer
shows the notes the assistant cited; citations are kept per answer
(keyed by ``message_id``) so they re-render without re-querying.

Run locally:
    streamlit run ui/main.py
"""

from __future__ import annotations

import os
from typing import Any, TypedDict

import httpx
import streamlit as st

# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------

API_URL = os.getenv("API_URL", "http://localhost:8000")
API_V1 = f"{API_URL}/api/v1"

# Completion can be slow on a cold local model
CHAT_TIMEOUT = 90.0
SYNC_TIMEOUT = 120.0


# ---------------------------------------------------------------------------
# Type Definitions
# ---------------------------------------------------------------------------


class SourceEntry(TypedDict):
    """Cited note from a chat response."""

    id: str
    title: str
    body_text: str
    day: str


class ChatMessage(TypedDict):
    """Chat message structure for session state."""

    role: str  # "user" | "assistant"
    content: str
    message_id: str | None


# ---------------------------------------------------------------------------
# Page Configuration
# ---------------------------------------------------------------------------

st.set_page_config(
    page_title="Journal — Ask your notes",
    page_icon="📓",
    layout="wide",
    initial_sidebar_state="expanded",
)

st.markdown(
    """
    <style>
    .journal-title { font-size: 2.2rem; font-weight: 700; color: #3F2E1E; }
    .journal-subtitle { color: #7C6F64; margin-bottom: 1.5rem; }
    .entry-card {
        background: #FBF8F3;
        border-left: 3px solid #B45309;
        border-radius: 0 0.5rem 0.5rem 0;
        padding: 0.6rem 0.9rem;
        margin: 0.4rem 0;
    }
    .entry-title { font-weight: 600; color: #78350F; }
    .entry-day { color: #92400E; font-size: 0.85rem; }
    .entry-body { color: #57534E; font-size: 0.9rem; margin-top: 0.2rem; }
    </style>
    """,
    unsafe_allow_html=True,
)


# ---------------------------------------------------------------------------
# Session State Initialization
# ---------------------------------------------------------------------------


def init_session_state() -> None:
    """Initialize session state variables."""
    if "messages" not in st.session_state:
        st.session_state.messages = []  # list[ChatMessage]
    if "citations" not in st.session_state:
        st.session_state.citations = {}  # message_id -> list[SourceEntry]


init_session_state()


# ---------------------------------------------------------------------------
# API Client Functions
# ---------------------------------------------------------------------------


def ask_question(message: str) -> dict[str, Any]:
    """
    Send a question to the chat endpoint.

    Returns:
        API response with ``response``, ``source_entries`` and ``message_id``.

    Raises:
        httpx.HTTPError: On network or API errors.
    """
    with httpx.Client(timeout=CHAT_TIMEOUT) as client:
        response = client.post(f"{API_V1}/chat", json={"message": message})
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result


def get_sync_status() -> dict[str, Any] | None:
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(f"{API_V1}/sync/status")
            response.raise_for_status()
            result: dict[str, Any] = response.json()
            return result
    except httpx.HTTPError:
        return None


def post_sync_action(action: str) -> dict[str, Any]:
    """POST to /sync/{action} (start, stop or run)."""
    with httpx.Client(timeout=SYNC_TIMEOUT) as client:
        response = client.post(f"{API_V1}/sync/{action}")
        response.raise_for_status()
        result: dict[str, Any] = response.json()
        return result


def check_api_health() -> bool:
    """Check if the API is reachable."""
    try:
        with httpx.Client(timeout=5.0) as client:
            response = client.get(f"{API_URL}/health")
            return response.status_code == 200
    except httpx.RequestError:
        return False


# ---------------------------------------------------------------------------
# UI Components
# ---------------------------------------------------------------------------


def render_sidebar() -> None:
    """Render the sidebar with API and sync status."""
    with st.sidebar:
        st.subheader("🔄 Embedding Sync")

        if not check_api_health():
            st.error("❌ API Unreachable", icon="🔴")
            st.caption(f"Endpoint: `{API_URL}`")
            return
        st.success("✅ API Connected", icon="🟢")

        status = get_sync_status()
        if status is not None:
            state = "running" if status["running"] else "stopped"
            st.caption(
                f"Scheduler {state} • every {status['interval_seconds']:.0f}s • "
                f"batch of {status['batch_size']}"
            )

        col_start, col_stop = st.columns(2)
        if col_start.button("▶ Start", use_container_width=True):
            post_sync_action("start")
            st.rerun()
        if col_stop.button("⏸ Stop", use_container_width=True):
            post_sync_action("stop")
            st.rerun()

        if st.button("⚡ Sync now", type="primary", use_container_width=True):
            with st.spinner("Embedding stale notes..."):
                try:
                    report = post_sync_action("run")
                except httpx.HTTPError as e:
                    st.error(f"❌ Sync failed: {e}")
                else:
                    if report["skipped"]:
                        st.info("A sync cycle is already running.")
                    else:
                        st.success(
                            f"Embedded {report['embedded']}/{report['fetched']} notes"
                            f" ({report['failed']} failed)"
                        )


def render_sources(sources: list[SourceEntry]) -> None:
    """Render cited notes in an expander."""
    if not sources:
        return

    with st.expander(f"📖 Cited entries ({len(sources)})", expanded=False):
        for source in sources:
            preview = source["body_text"][:200]
            st.markdown(
                f"""
                <div class="entry-card">
                    <span class="entry-title">📝 {source["title"] or "Untitled"}</span>
                    <span class="entry-day"> — {source["day"]}</span>
                    <p class="entry-body">{preview}</p>
                </div>
                """,
                unsafe_allow_html=True,
            )


def render_chat_history() -> None:
    """Render the chat message history."""
    for message in st.session_state.messages:
        with st.chat_message(message["role"]):
            st.markdown(message["content"])
            if message["role"] == "assistant" and message.get("message_id"):
                render_sources(st.session_state.citations.get(message["message_id"], []))


def append_assistant_error(error_msg: str) -> None:
    st.error(f"❌ {error_msg}")
    st.session_state.messages.append(
        {"role": "assistant", "content": error_msg, "message_id": None}
    )


def render_main_chat() -> None:
    """Render the main chat interface."""
    st.markdown('<p class="journal-title">📓 Journal</p>', unsafe_allow_html=True)
    st.markdown(
        '<p class="journal-subtitle">Ask about past meetings, decisions and notes</p>',
        unsafe_allow_html=True,
    )

    if not check_api_health():
        st.error(
            "**Cannot connect to the Journal API**\n\n"
            f"The backend at `{API_URL}` is not responding. Start it with:\n"
            "```bash\nuvicorn journal.main:app --reload\n```"
        )
        return

    render_chat_history()

    if prompt := st.chat_input("Ask a question about your journal..."):
        user_message: ChatMessage = {"role": "user", "content": prompt, "message_id": None}
        st.session_state.messages.append(user_message)

        with st.chat_message("user"):
            st.markdown(prompt)

        with st.chat_message("assistant"):
            with st.spinner("Thinking..."):
                try:
                    result = ask_question(prompt)
                except httpx.HTTPStatusError as e:
                    append_assistant_error(f"API returned error: {e.response.status_code}")
                    return
                except httpx.RequestError as e:
                    append_assistant_error(f"Connection failed: {e}")
                    return

            answer = result.get("response", "No response received.")
            message_id = result["message_id"]
            sources: list[SourceEntry] = result.get("source_entries", [])

            st.markdown(answer)
            render_sources(sources)

            st.session_state.citations[message_id] = sources
            assistant_message: ChatMessage = {
                "role": "assistant",
                "content": answer,
                "message_id": message_id,
            }
            st.session_state.messages.append(assistant_message)


# ---------------------------------------------------------------------------
# Main Entry Point
# ---------------------------------------------------------------------------


def main() -> None:
    """Main application entry point."""
    render_sidebar()
    render_main_chat()


if __name__ == "__main__":
    main()
