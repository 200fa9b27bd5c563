import matplotlib
matplotlib.use("Agg")

import streamlit as st
import matplotlib.pyplot as plt
from datetime import datetime
import logging
import time

from moodscape import config
from moodscape.ai import (
    Language, MoodInput, TherapyGenerationError, check_for_crisis, generate_therapy,
)
from moodscape.breathing import BreathingSession
from moodscape.history import (
    SessionHistoryItem, USER_LEVELS, clear_history, level_for, load_history, next_level, record_session,
)
from moodscape.patterns import DEFAULT_PATTERNS, PHASES
from moodscape.quotes import get_quotable_quote
from moodscape.storage import JsonFileStore, user_path

config.configure_logging()
logger = logging.getLogger("moodscape.app")

# ===============================
# PAGE CONFIG
# ===============================

st.set_page_config(
    page_title="MoodScape",
    page_icon="🌬️",
    layout="wide"
)

# ===============================
# CUSTOM CSS
# ===============================

st.markdown("""
<style>
.stApp { background-color: #0f172a; color: #e2e8f0; }
.affirmation-box { background: linear-gradient(135deg, #0ea5e9, #a855f7);
                   border-radius: 15px; padding: 20px; text-align: center;
                   font-size: 1.2em; color: white; margin: 10px 0; }
.quote-box { background: linear-gradient(135deg, #f093fb, #f5576c);
             border-radius: 12px; padding: 20px; font-style: italic;
             text-align: center; color: white; margin: 10px 0; }
.orb { margin: 20px auto; border-radius: 50%; display: flex; flex-direction: column;
       align-items: center; justify-content: center; color: white;
       background: radial-gradient(circle, #1e293b, #0f172a); }
.orb .count { font-size: 4em; font-weight: 700; text-shadow: 0 0 10px rgba(255,255,255,0.5); }
.orb .phase { font-size: 1.6em; color: #cbd5e1; }
</style>
""", unsafe_allow_html=True)

# ===============================
# GROQ CLIENT
# ===============================

client = config.get_groq_client()

MOODS = {
    "😥 Stressed": "stressed and overwhelmed",
    "😟 Anxious": "anxious and worried",
    "😢 Sad": "sad and feeling down",
    "😴 Tired": "mentally and physically tired",
    "😐 Okay": "feeling just okay",
    "😊 Happy": "happy and content",
}

HELPLINE = """
🚨 **It sounds like you are going through a very difficult time.**

It's really important to talk to someone who can help right now:
- 🇮🇳 KIRAN Mental Health Helpline (24/7): **1800-599-0019**
- 🇺🇸 Suicide & Crisis Lifeline: **988** (call or text)
- 🌍 Or contact local emergency services

You are not alone. Help is available. 💙
"""

HOME_PAGE = "🏠 Home"
BREATHING_PAGE = "🌬️ Breathing Guide"
HISTORY_PAGE = "📜 History"
ABOUT_PAGE = "ℹ About"

# ===============================
# MOCK LOGIN GATE
# ===============================

if not st.session_state.get("username"):
    st.title("🌬️ MoodScape")
    st.markdown("""
    ### Turn how you feel into a calming, personal session 🌱

    - 🎨 **AI-crafted sessions** — affirmation, narration and a micro exercise
    - 🫁 **Breathing guide** — timed phases with gentle tones, custom patterns
    - 📜 **History & levels** — grow from Sprout to Sanctuary Guardian

    > ⚠️ This is **not** a replacement for licensed mental health care.
    """)
    name = st.text_input("What should we call you?", placeholder="Your name")
    if st.button("🔐 Enter", type="primary") and name.strip():
        st.session_state.username = name.strip()
        st.rerun()
    st.stop()

_display_name = st.session_state.username.split()[0]


def history_store():
    return JsonFileStore(user_path(st.session_state.username, config.HISTORY_SLOT))


def pattern_store():
    return JsonFileStore(user_path(st.session_state.username, config.CUSTOM_PATTERNS_SLOT))


# ===============================
# BREATHING SESSION HELPERS
# ===============================

def _forget_breathing():
    st.session_state.pop("breathing", None)


def close_breathing():
    session = st.session_state.get("breathing")
    if session is not None:
        session.close()


def open_breathing(pattern, title):
    close_breathing()
    session = BreathingSession(pattern, title, on_close=_forget_breathing, store=pattern_store())
    session.start()
    st.session_state.breathing = session


def _start_from_therapy():
    bundle = st.session_state.get("therapy")
    pattern = bundle.breathing_pattern() if bundle else None
    if pattern is None:
        return
    open_breathing(pattern, bundle.micro_action.title)
    st.session_state.page = BREATHING_PAGE


def _on_duration_change(phase, key):
    session = st.session_state.get("breathing")
    if session is not None and not session.closed:
        session.change_pattern_value(phase, st.session_state[key])


def render_orb(placeholder, session):
    scale = 1.0 if session.phase == "inhale" else 0.6
    glow = "rgba(56, 189, 248, 0.6)" if session.phase == "inhale" else "rgba(192, 132, 252, 0.6)"
    size = int(280 * scale)
    if session.is_stalled:
        count, label = "–", "Set a duration above 0"
    else:
        count, label = session.countdown, session.phase_label
    placeholder.markdown(
        f'<div class="orb" style="width:{size}px;height:{size}px;box-shadow:0 0 60px {glow};'
        f'transition:all {max(session.duration, 1)}s ease-in-out;">'
        f'<div class="count">{count}</div><div class="phase">{label}</div></div>',
        unsafe_allow_html=True)


# ===============================
# SIDEBAR
# ===============================

with st.sidebar:
    st.title(f"🌬️ Hi, {_display_name}!")
    _sessions = load_history(history_store())
    _level = level_for(len(_sessions))
    st.markdown(f"{_level.icon} **{_level.name}** · {len(_sessions)} sessions")
    st.markdown("---")

    page = st.radio("Navigate", [HOME_PAGE, BREATHING_PAGE, HISTORY_PAGE, ABOUT_PAGE], key="page")

    st.markdown("---")
    if st.button("🚪 Log Out"):
        close_breathing()
        st.session_state.clear()
        st.rerun()

# Leaving the guide tears the session down: no timers or tones outlive the view
if page != BREATHING_PAGE:
    close_breathing()

# ===============================
# HOME PAGE
# ===============================

if page == HOME_PAGE:
    st.title(f"🌿 Welcome back, {_display_name}!")

    c1, c2 = st.columns([3, 2])
    with c1:
        with st.form("checkin"):
            st.markdown("### 💙 How are you feeling right now?")
            mood_label = st.radio("Mood", list(MOODS.keys()), horizontal=True)
            intensity = st.slider("Intensity", 0, 100, 50)
            color = st.color_picker("A colour that resonates with you", "#38bdf8")
            context = st.text_area("Anything on your mind? (optional)", height=100,
                                   placeholder="A deadline, a conversation, a feeling you can't name...")
            language = st.selectbox("Language", list(Language), format_func=lambda l: l.value)
            submitted = st.form_submit_button("✨ Create my MoodScape", type="primary")

        if submitted:
            with st.spinner("Checking in..."):
                in_crisis = check_for_crisis(client, f"{MOODS[mood_label]}. {context}")
            if in_crisis:
                st.session_state.pop("therapy", None)
                st.error(HELPLINE)
            else:
                mood_input = MoodInput(mood=MOODS[mood_label], context=context, intensity=intensity, color=color)
                try:
                    with st.spinner("Crafting your session..."):
                        bundle = generate_therapy(client, mood_input, language)
                except TherapyGenerationError as e:
                    logger.warning("Therapy generation failed for %s: %s", st.session_state.username, e)
                    st.error(f"😔 {e} Please try again in a moment.")
                else:
                    st.session_state.therapy = bundle
                    record_session(history_store(), SessionHistoryItem(
                        date=datetime.now().strftime("%Y-%m-%d %H:%M"),
                        mood=mood_label,
                        context=context,
                        affirmation=bundle.affirmation,
                        intensity=intensity,
                    ))

    with c2:
        quote, author = get_quotable_quote()
        st.markdown(
            f'<div class="quote-box">💬 <strong>Inspiring Quote</strong><br><br>"{quote}"<br><small>— {author}</small></div>',
            unsafe_allow_html=True)

    bundle = st.session_state.get("therapy")
    if bundle:
        st.markdown("---")
        st.markdown(
            f'<div class="affirmation-box">✨ <strong>Your Affirmation</strong><br><br>"{bundle.affirmation}"</div>',
            unsafe_allow_html=True)
        st.subheader("🎧 Your Scene")
        st.write(bundle.narration_script)
        st.caption(f"Soundscape: {bundle.soundscape_type} · Image prompt: {bundle.image_prompt}")

        st.subheader(f"🧘 {bundle.micro_action.title}")
        for i, step in enumerate(bundle.micro_action.steps, 1):
            st.markdown(f"{i}. {step}")
        suggested = bundle.breathing_pattern()
        if suggested is not None:
            st.caption(" · ".join(f"{p}: {suggested.duration(p)}s" for p in PHASES))
            st.button("🫁 Start Breathing", type="primary", on_click=_start_from_therapy)


# ===============================
# BREATHING GUIDE PAGE
# ===============================

elif page == BREATHING_PAGE:
    session = st.session_state.get("breathing")

    if session is None:
        st.title("🌬️ Breathing Guide")
        st.markdown("*Follow the orb. Gentle tones mark each new phase.*")
        choice = st.selectbox("Start with", [p.name for p in DEFAULT_PATTERNS])
        if st.button("▶️ Start", type="primary"):
            chosen = next(p for p in DEFAULT_PATTERNS if p.name == choice)
            open_breathing(chosen.pattern, chosen.name)
            st.rerun()
    else:
        c1, c2 = st.columns([6, 1])
        with c1:
            st.title(session.current_pattern.name)
            if session.current_pattern.description:
                st.caption(session.current_pattern.description)
        with c2:
            if st.button("✖️ Close", help="Close breathing guide"):
                session.close()
                st.rerun()

        orb_ph = st.empty()
        audio_ph = st.empty()

        # ---- pattern chips ----
        chips = st.columns(len(session.all_patterns) + 1)
        for i, p in enumerate(session.all_patterns):
            with chips[i]:
                active = p.name == session.current_pattern.name
                if st.button(p.name, key=f"pick_{i}", type="primary" if active else "secondary"):
                    session.select_pattern(p)
                    st.rerun()
                if p.is_custom and st.button("🗑️", key=f"delete_{i}", help=f"Delete {p.name}"):
                    session.request_delete_pattern(p)
                    st.rerun()
        with chips[-1]:
            if st.button("Close Editor" if session.is_editing else "Customize"):
                session.toggle_editing()
                st.rerun()

        # ---- confirmations ----
        pending = session.pending
        if pending is not None and pending.kind == "delete":
            st.warning(pending.message)
            y, n = st.columns(2)
            if y.button("Yes, delete"):
                session.resolve_pending(True)
                st.rerun()
            if n.button("Keep it"):
                session.resolve_pending(False)
                st.rerun()
        elif pending is not None and pending.kind == "save":
            name = st.text_input(pending.message, value=pending.default or "")
            y, n = st.columns(2)
            if y.button("💾 Save", type="primary"):
                if session.resolve_pending(True, name) is None:
                    st.warning("Pattern not saved. Pick a non-blank name that isn't a built-in pattern.")
                st.rerun()
            if n.button("Cancel"):
                session.resolve_pending(False)
                st.rerun()

        # ---- editor ----
        if session.is_editing:
            cols = st.columns(len(PHASES))
            labels = {"inhale": "Inhale", "hold": "Hold", "exhale": "Exhale", "postExhaleHold": "Hold (after exhale)"}
            for col, phase in zip(cols, PHASES):
                key = f"edit_{phase}_{session.current_pattern.name}"
                with col:
                    seconds = session.current_pattern.pattern.duration(phase)
                    st.slider(f"{labels[phase]} (s)", 0, max(config.MAX_PHASE_SECONDS, seconds), seconds,
                              key=key, on_change=_on_duration_change, args=(phase, key))
            e1, e2 = st.columns(2)
            if e1.button("Save as New Pattern", type="primary"):
                session.request_save_pattern()
                st.rerun()
            if e2.button("Done"):
                session.toggle_editing()
                st.rerun()

        # ---- live loop (interrupted by Streamlit on the next interaction) ----
        if session.audio is not None:
            session.audio.attach(lambda wav: audio_ph.audio(wav, format="audio/wav", autoplay=True))
        while not session.closed:
            session.poll()
            render_orb(orb_ph, session)
            time.sleep(0.25)


# ===============================
# HISTORY PAGE
# ===============================

elif page == HISTORY_PAGE:
    st.title("📜 Your Journey")
    history = load_history(history_store())
    count = len(history)
    level = level_for(count)
    upcoming = next_level(count)

    c1, c2, c3 = st.columns(3)
    with c1:
        st.metric("🌱 Wellness Level", f"{level.icon} {level.name}".strip())
    with c2:
        st.metric("🧘 Sessions", count)
    with c3:
        st.metric("🎯 Next Level", upcoming.name if upcoming else "Max level!")
    if upcoming:
        st.progress((count - level.threshold) / (upcoming.threshold - level.threshold),
                    text=f"{upcoming.threshold - count} more sessions to {upcoming.name}")

    with st.expander("How levels work"):
        for lvl in USER_LEVELS:
            st.markdown(f"**{lvl.level}. {lvl.name}** {lvl.icon} — {lvl.threshold}+ sessions")

    if not history:
        st.info("No sessions yet. Create your first MoodScape on the Home page!")
    else:
        intensities = [h.intensity for h in reversed(history) if h.intensity is not None]
        if len(intensities) > 1:
            st.subheader("📉 Mood Intensity Over Time")
            fig, ax = plt.subplots(figsize=(10, 3))
            ax.plot(intensities, marker='o', linewidth=2, color='#38bdf8', markersize=5)
            ax.fill_between(range(len(intensities)), intensities, 0, alpha=0.2, color='#38bdf8')
            ax.set_xlabel("Sessions")
            ax.set_ylabel("Intensity (0-100)")
            ax.set_ylim(0, 105)
            ax.grid(True, alpha=0.3)
            st.pyplot(fig)
            plt.close()

        for item in history:
            with st.expander(f"📅 {item.date} — {item.mood}"):
                st.markdown(f'*"{item.affirmation}"*')
                if item.context:
                    st.caption(item.context)

        st.markdown("---")
        if st.session_state.get("_confirm_clear"):
            st.warning("Are you sure you want to clear your session history? This cannot be undone.")
            y, n = st.columns(2)
            if y.button("Yes, clear"):
                clear_history(history_store())
                st.session_state["_confirm_clear"] = False
                st.rerun()
            if n.button("Cancel"):
                st.session_state["_confirm_clear"] = False
                st.rerun()
        elif st.button("🗑️ Clear History"):
            st.session_state["_confirm_clear"] = True
            st.rerun()


# ===============================
# ABOUT PAGE
# ===============================

elif page == ABOUT_PAGE:
    st.title("ℹ️ About MoodScape")
    st.markdown("""
    ### 🌬️ MoodScape

    Tell MoodScape how you feel and it crafts a short, personal session: an affirmation,
    a calming narrated scene and a one-minute exercise, usually a breathing pattern you can
    follow in the Breathing Guide.

    **Features:**
    - 🏠 **Home** — Mood check-in, crisis screening, AI session, quotes
    - 🌬️ **Breathing Guide** — Timed phases with tones, built-in and custom patterns
    - 📜 **History** — Your last 50 sessions, wellness levels, intensity trend

    **APIs & Libraries:**
    - [Groq](https://groq.com) — LLM inference (Llama 3.1)
    - [Quotable API](https://api.quotable.io) — Inspirational quotes
    - [Streamlit](https://streamlit.io) — App framework
    - [Matplotlib](https://matplotlib.org) — Charts
    - [NumPy](https://numpy.org) — Tone synthesis

    ---
    > ⚠️ **Disclaimer:** This app is for supportive guidance only. It does **not** replace professional mental health care.
    > If you are in crisis, please contact your local emergency services.
    """)
