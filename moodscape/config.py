import logging
import os

import streamlit as st
from groq import Groq

# ===============================
# STORAGE
# ===============================

DATA_DIR = os.environ.get("MOODSCAPE_DATA_DIR", "user_data")

CUSTOM_PATTERNS_SLOT = "custom_patterns"
HISTORY_SLOT = "session_history"

# Keep the 50 most recent sessions for level calculation
HISTORY_LIMIT = 50

# ===============================
# BREATHING
# ===============================

MAX_PHASE_SECONDS = 15

# ===============================
# GROQ
# ===============================

GROQ_MODEL = "llama-3.1-8b-instant"


def get_groq_client() -> Groq:
    return Groq(api_key=st.secrets["GROQ_API_KEY"])


_logging_configured = False


def configure_logging():
    """Set up root logging once per process (Streamlit reruns the script)."""
    global _logging_configured
    if _logging_configured:
        return
    level = os.environ.get("MOODSCAPE_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    _logging_configured = True
