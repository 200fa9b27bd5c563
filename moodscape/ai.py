import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from moodscape import config
from moodscape.patterns import BreathingPattern

logger = logging.getLogger(__name__)


class TherapyGenerationError(Exception):
    pass


class Language(Enum):
    EN = "English"
    HI = "Hindi"
    HINGLISH = "Hinglish (Hindi-English mix)"


@dataclass(frozen=True)
class MoodInput:
    mood: str
    context: str
    intensity: int
    color: str


SOUNDSCAPE_TYPES = ("rain", "forest", "ocean", "ambient")


@dataclass
class MicroAction:
    title: str
    type: str
    steps: List[str] = field(default_factory=list)
    pattern: Optional[dict] = None


@dataclass
class TherapyBundle:
    affirmation: str
    narration_script: str
    image_prompt: str
    micro_action: MicroAction
    soundscape_type: str = "default"

    def breathing_pattern(self) -> Optional[BreathingPattern]:
        if self.micro_action.type != "breathing" or not self.micro_action.pattern:
            return None
        try:
            pattern = BreathingPattern.from_dict(self.micro_action.pattern)
        except ValueError as e:
            logger.warning("AI returned an unusable breathing pattern: %s", e)
            return None
        return None if pattern.is_empty() else pattern


# ===============================
# CRISIS DETECTION
# ===============================

CRISIS_WORDS = [
    # Direct suicidal ideation
    "suicide", "suicidal", "kill myself", "killing myself",
    "end my life", "take my life", "end it all",
    "i want to die", "wanna die", "want to die", "better off dead",
    "no reason to live", "nothing to live for", "not worth living",

    # Self-harm
    "self harm", "self-harm", "hurt myself", "harm myself",
    "cut myself", "cutting myself",

    # Disappearing / giving up
    "want to disappear", "don't want to exist", "don't want to be alive",
    "wish i was never born", "wish i were dead", "tired of living",
    "can't go on", "can't do this anymore", "no point in living",

    # Hopelessness / farewell signals
    "goodbye forever", "nobody would miss me", "no one would miss me",
    "everyone is better off without me", "i have a plan to",
]


def contains_crisis_language(text: str) -> bool:
    return any(w in text.lower() for w in CRISIS_WORDS)


def check_for_crisis(client, text: str) -> bool:
    if contains_crisis_language(text):
        return True
    try:
        completion = client.chat.completions.create(
            messages=[
                {"role": "system", "content": (
                    "Analyze the following text for any indication of immediate crisis, self-harm, or "
                    "suicidal ideation. Respond ONLY with the single word CRISIS if such content is present, "
                    "otherwise respond ONLY with the single word SAFE."
                )},
                {"role": "user", "content": text},
            ],
            model=config.GROQ_MODEL, temperature=0, max_tokens=5,
        )
        verdict = completion.choices[0].message.content.strip().upper()
    except Exception:
        # Fail safe: if the safety check fails we don't proceed
        logger.exception("Error in safety check")
        return True
    return verdict.startswith("CRISIS")


# ===============================
# THERAPY SESSION
# ===============================

THERAPY_SCHEMA = """{
  "affirmation": "a short, powerful, personalized mantra",
  "narrationScript": "a calming, culturally relevant narrated scene (100-150 words)",
  "imagePrompt": "a prompt for a serene, abstract, calming wallpaper",
  "soundscapeType": "one of rain, forest, ocean, ambient",
  "microAction": {
    "title": "short catchy title",
    "type": "breathing or grounding",
    "steps": ["3-4 simple instructions"],
    "pattern": {"inhale": 4, "hold": 4, "exhale": 4, "postExhaleHold": 4}
  }
}"""


def build_therapy_prompt(mood_input: MoodInput, language: Language) -> str:
    return (
        f"You are an empathetic AI therapist creating a micro-therapy session for a young person in {language.value}.\n"
        f"User's state:\n"
        f"- Feeling: {mood_input.mood}\n"
        f"- Intensity (0-100): {mood_input.intensity}\n"
        f"- Resonating Color: {mood_input.color}\n"
        f"- Additional context: \"{mood_input.context}\"\n\n"
        "Respond with a JSON object shaped like this:\n"
        f"{THERAPY_SCHEMA}\n"
        "The micro-action should be a simple, 60-second evidence-based exercise (strongly prioritize "
        "'breathing' with a structured pattern in whole seconds; omit pattern for grounding)."
    )


def parse_therapy_bundle(raw: str) -> TherapyBundle:
    try:
        data = json.loads(raw)
        action = data["microAction"]
        micro_action = MicroAction(
            title=str(action["title"]),
            type=str(action["type"]).lower(),
            steps=[str(s) for s in action.get("steps") or []],
            pattern=action.get("pattern"),
        )
        soundscape = str(data.get("soundscapeType", "")).lower()
        return TherapyBundle(
            affirmation=str(data["affirmation"]),
            narration_script=str(data["narrationScript"]),
            image_prompt=str(data["imagePrompt"]),
            micro_action=micro_action,
            soundscape_type=soundscape if soundscape in SOUNDSCAPE_TYPES else "default",
        )
    except (ValueError, KeyError, TypeError) as e:
        raise TherapyGenerationError(f"Malformed therapy content: {e}") from e


def generate_therapy(client, mood_input: MoodInput, language: Language = Language.EN) -> TherapyBundle:
    try:
        completion = client.chat.completions.create(
            messages=[
                {"role": "system", "content": "You only answer with valid JSON."},
                {"role": "user", "content": build_therapy_prompt(mood_input, language)},
            ],
            model=config.GROQ_MODEL, temperature=0.7, max_tokens=700,
            response_format={"type": "json_object"},
        )
        raw = completion.choices[0].message.content
    except Exception as e:
        logger.exception("Error generating therapy content")
        raise TherapyGenerationError("Failed to generate therapy content from AI.") from e
    return parse_therapy_bundle(raw)
