"""
Persona system prompts and reply post-processing.

Replies are requested in the form ``*reaction* spoken line``. The reaction is
used to derive a mood emoji and a coarse character state, then stripped from
the text shown to the user.
"""

import re
from dataclasses import dataclass
from typing import Dict, Union

from banter.kernel.models.character import Character
from banter.kernel.models.conversation import LessonConfig, ScenarioConfig

NEUTRAL_MOOD = "😐"

_ACTION_RE = re.compile(r"\*([^*]*)\*")
_WHITESPACE_RE = re.compile(r"\s+")

MOOD_KEYWORDS: Dict[str, str] = {
    # Positive
    "smile": "😊",
    "grin": "😁",
    "laugh": "😄",
    "excited": "😃",
    "happy": "😊",
    "interested": "🤔",
    "curious": "🧐",
    "impressed": "😮",
    "surprised": "😲",
    "amused": "😏",
    "lights up": "😊",
    "nod": "😌",
    # Negative
    "roll": "🙄",
    "eyebrow": "🤨",
    "unimpressed": "😑",
    "annoyed": "😤",
    "frustrated": "😠",
    "uncomfortable": "😬",
    "nervous": "😰",
    "confused": "😕",
    "suspicious": "🤔",
    "bored": "😴",
    "dismissive": "🙄",
    "skeptical": "🤨",
    "scoff": "😤",
    "sigh": "😔",
    # Body language
    "lean forward": "🤔",
    "step back": "😬",
    "cross arms": "😤",
    "look away": "😑",
    "check phone": "😴",
}

# Longest first so "unimpressed" wins over "impressed"
_MOOD_ORDER = sorted(MOOD_KEYWORDS, key=len, reverse=True)

_STATE_KEYWORDS = (
    ("uncomfortable", ("uncomfortable", "step back")),
    ("excited", ("excited", "light up")),
    ("bored", ("bored", "check phone")),
    ("confused", ("confused", "pause")),
)

RESPONSE_FORMAT = """RESPONSE FORMAT:
- Start with an emotional reaction in *asterisks*: *smiles*, *looks confused*, *rolls eyes*, etc.
- Then give your spoken response
- Example: "*raises eyebrow* Are you serious right now?"
- Keep responses natural and appropriately short for your personality

IMPORTANT: Stay true to your character. React authentically - be uncomfortable if someone is creepy, bored if they're uninteresting, engaged if they're compelling."""


@dataclass(frozen=True)
class ProcessedReply:
    text: str
    mood: str
    character_state: str


def _persona_block(character: Character) -> str:
    traits = character.core_traits
    descriptor = " ".join(p for p in (traits.social_energy, character.gender) if p) or "person"
    lines = [
        f"You are {character.display_name}, a {descriptor} with a {traits.persona or 'friendly'} personality.",
        "",
        "CORE PERSONALITY:",
        f"- Response style: {traits.response_style}",
        f"- Comfort zone: {traits.comfort_zone}",
        f"- Social skill level: {traits.social_skill_level}",
    ]
    if character.interests:
        lines += ["", f"YOUR INTERESTS: {', '.join(character.interests)}"]
    if character.behavioral_rules:
        lines += ["", "BEHAVIORAL RULES:"]
        lines += [f"- {rule}" for rule in character.behavioral_rules]
    return "\n".join(lines)


def _lesson_block(config: LessonConfig) -> str:
    lesson = config.lesson
    title = lesson.title if lesson else config.lesson_id
    lines = ["LESSON CONTEXT:", f"- You're helping someone practice: {title} ({config.level} level)"]
    instructions: Dict[str, str] = {}
    if lesson:
        level = lesson.levels.get(config.level)
        if level and level.learning_objective:
            lines.append(f"- Learning objective: {level.learning_objective}")
        instructions = lesson.character_instructions
    lines.append(f"- Your role: {instructions.get('role', 'conversation partner')}")
    lines.append(f"- Behavior: {instructions.get('behavior', 'Help them practice this skill')}")
    return "\n".join(lines)


def _scenario_block(config: ScenarioConfig) -> str:
    scenario = config.scenario
    if scenario is None:
        lines = ["SCENARIO CONTEXT:", f"- Setting: {config.scenario_id}"]
    else:
        lines = [
            "SCENARIO CONTEXT:",
            f"- Setting: {scenario.name} - {scenario.description}",
            f"- Mood: {scenario.mood}",
            f"- Time: {scenario.time_of_day}",
            f"- Social norms: {', '.join(scenario.social_norms)}",
        ]
    if config.mission:
        lines.append(f"- Mission: The user is trying to {config.mission.description}")
    return "\n".join(lines)


def build_system_prompt(character: Character, config: Union[LessonConfig, ScenarioConfig]) -> str:
    """Render the persona plus its lesson or scenario context."""
    if isinstance(config, LessonConfig):
        context = _lesson_block(config)
    else:
        context = _scenario_block(config)
    return "\n\n".join((_persona_block(character), context, RESPONSE_FORMAT))


def extract_mood(raw: str) -> str:
    actions = " ".join(_ACTION_RE.findall(raw)).lower()
    if not actions:
        return NEUTRAL_MOOD
    for keyword in _MOOD_ORDER:
        if keyword in actions:
            return MOOD_KEYWORDS[keyword]
    return NEUTRAL_MOOD


def character_state(raw: str) -> str:
    lowered = raw.lower()
    for state, keywords in _STATE_KEYWORDS:
        if any(k in lowered for k in keywords):
            return state
    return "neutral"


def clean_reply(raw: str) -> str:
    """Drop *actions*, collapse whitespace and unwrap a fully quoted line."""
    text = _WHITESPACE_RE.sub(" ", _ACTION_RE.sub("", raw)).strip()
    if len(text) >= 2 and text.startswith('"') and text.endswith('"'):
        text = text[1:-1]
    return text


def process_reply(raw: str) -> ProcessedReply:
    return ProcessedReply(
        text=clean_reply(raw),
        mood=extract_mood(raw),
        character_state=character_state(raw),
    )
