"""
Prompt builders for coaching content.

Each stage produces a (system, user) PromptPair. System prompts are fixed
texts stored in prompt_templates/ and read once at import; the builders
themselves only interpolate their inputs and never touch the network,
the database or the clock.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Optional

from .models import DayCompletion


PROMPTS_DIR = Path(__file__).parent / "prompt_templates"

DEFAULT_LANGUAGE = "English"

# Prior-day summaries injected into frame and voice prompts are capped
SUMMARY_CHAIN_LIMIT = 1500
SUMMARY_CHAIN_TRUNCATED = "[...earlier days truncated]"

NO_REFLECTIONS = "No specific reflections recorded"
NO_ACTIONS = "No specific actions recorded"


def load_prompt(prompt_path: Path) -> str:
    """Load a system prompt from a file.

    Args:
        prompt_path: Path to the prompt file

    Returns:
        Contents of the prompt file
    """
    return prompt_path.read_text(encoding="utf-8").strip()


MODULE_GENERATION_SYSTEM_PROMPT = load_prompt(PROMPTS_DIR / "module_generation.txt")
FRAME_SYSTEM_PROMPT = load_prompt(PROMPTS_DIR / "frame.txt")
SHIFT_SYSTEM_PROMPT = load_prompt(PROMPTS_DIR / "shift.txt")
TRANSCRIPT_SUMMARY_SYSTEM_PROMPT = load_prompt(PROMPTS_DIR / "transcript_summary.txt")
COMPLETION_QUOTE_SYSTEM_PROMPT = load_prompt(PROMPTS_DIR / "completion_quote.txt")


@dataclass(frozen=True)
class PromptPair:
    """System instructions plus the user message for one model call."""
    system: str
    user: str


@dataclass(frozen=True)
class FrameContext:
    """Inputs for the daily reading."""
    module_title: str
    module_theme: str
    day_number: int
    total_days: int
    day_title: str
    framework: str
    framework_description: str
    personal_context: Optional[str] = None
    user_name: Optional[str] = None
    previous_day_summaries: str = ""
    language: str = DEFAULT_LANGUAGE


@dataclass(frozen=True)
class ReflectionContext:
    """Inputs for the live voice reflection."""
    module_title: str
    day_title: str
    framework: str
    framework_description: str
    reflection_prompt: str
    personal_context: Optional[str] = None
    previous_day_summaries: str = ""
    language: str = DEFAULT_LANGUAGE


@dataclass(frozen=True)
class ShiftContext:
    """Inputs for the day's micro-action."""
    module_title: str
    day_title: str
    framework: str
    shift_focus: str
    reflection_summary: str
    personal_context: Optional[str] = None
    language: str = DEFAULT_LANGUAGE


# -----------------------------------------------------------------------------
# Module generation
# -----------------------------------------------------------------------------


def build_module_generation_prompt(
    personal_context: str,
    user_name: Optional[str] = None,
    language: str = DEFAULT_LANGUAGE,
) -> PromptPair:
    """Ask for 2-3 modules tailored to the user's personal context."""
    parts = [f"USER CONTEXT:\n{personal_context}"]
    if user_name:
        parts.append(f"USER NAME: {user_name}")
    parts.append(f"LANGUAGE: Generate all content in {language}.")
    parts.append(
        "Based on this person's context, design 2-3 personalized thinking journeys "
        "that address their specific challenges and goals. Make every module feel "
        "made for this person and refer to their situation in descriptions and "
        "prompts where it fits."
    )
    return PromptPair(system=MODULE_GENERATION_SYSTEM_PROMPT, user="\n\n".join(parts))


# -----------------------------------------------------------------------------
# Daily steps
# -----------------------------------------------------------------------------


def build_frame_prompt(context: FrameContext) -> PromptPair:
    lines = [
        f'MODULE: "{context.module_title}" (Day {context.day_number} of {context.total_days})',
        f"TODAY'S FOCUS: {context.day_title}",
        f"FRAMEWORK: {context.framework}",
        f"FRAMEWORK DETAILS: {context.framework_description}",
        f"MODULE THEME: {context.module_theme}",
    ]
    if context.user_name:
        lines.append(f"USER NAME: {context.user_name}")
    if context.personal_context:
        lines.append(f"USER CONTEXT:\n{context.personal_context}")
    if context.previous_day_summaries:
        lines.append(f"PREVIOUS DAYS:\n{context.previous_day_summaries}")
    lines.append(f"LANGUAGE: Write in {context.language}.")

    user = "\n".join(lines) + (
        "\n\nWrite today's Frame content. Make it personal and relevant to this user."
    )
    return PromptPair(system=FRAME_SYSTEM_PROMPT, user=user)


def build_reflection_instructions(context: ReflectionContext) -> str:
    """
    Instructions for the realtime voice agent that runs the reflection.

    The agent follows a fixed OPEN / LISTEN / INSIGHT / DEEPEN / CLOSE
    structure and must answer only in the user's language.
    """
    language = context.language
    sections = [
        "# CRITICAL - Language Requirement\n"
        f"You MUST respond ONLY in {language}. Every single word must be in {language}.",

        "# Your Role\n"
        "You are running a focused 3-5 minute reflection session as part of the "
        f'"{context.module_title}" thinking journey.\n'
        f"Today is: {context.day_title}\n"
        f"Today's framework: {context.framework}: {context.framework_description}",

        "# Session Structure\n"
        "1. OPEN: Greet the user briefly and ask the reflection question: "
        f'"{context.reflection_prompt}"\n'
        "2. LISTEN: Let them talk. Mirror back their key points in their own words.\n"
        "3. INSIGHT: Offer ONE specific insight that links what they said to today's "
        "framework. Mention the framework by name.\n"
        "4. DEEPEN: Ask ONE follow-up question that opens an angle they have not "
        "considered.\n"
        "5. CLOSE: Briefly sum up what you heard, the key insight and any commitment "
        'they made. Then say something like "Great reflection. Let\'s see your action '
        'for today."',

        "# Voice Guidelines\n"
        "- Keep each response to 2-3 sentences\n"
        "- Be warm, specific and coaching-oriented\n"
        "- Use their name if you know it\n"
        "- This is a MINI-session: stay focused and do not drift\n"
        "- After 3-4 exchanges, wrap up naturally with the summary",
    ]

    if context.personal_context:
        sections.append(f"# User Context\n{context.personal_context}")

    if context.previous_day_summaries:
        sections.append(f"# Previous Days' Reflections\n{context.previous_day_summaries}")
        sections.append(
            "# Continuity\n"
            '- Refer to past reflections naturally: "Last time you mentioned..."\n'
            "- Notice progress or shifts in thinking\n"
            "- Build on insights already established"
        )

    return "\n\n".join(sections).strip()


def build_shift_prompt(context: ShiftContext) -> PromptPair:
    user = (
        f'MODULE: "{context.module_title}"\n'
        f"TODAY: {context.day_title}\n"
        f"FRAMEWORK: {context.framework}\n"
        f"SHIFT FOCUS: {context.shift_focus}\n"
        "\n"
        f'USER\'S REFLECTION SUMMARY: "{context.reflection_summary}"'
    )
    if context.personal_context:
        user += f"\nUSER CONTEXT:\n{context.personal_context}"
    user += f"\nLANGUAGE: Write in {context.language}."
    user += (
        "\n\nCreate a personalized micro-action this user can do right now. "
        "Base it on what they said in their reflection, not on generic advice."
    )
    return PromptPair(system=SHIFT_SYSTEM_PROMPT, user=user)


def build_transcript_summary_prompt(
    transcript: str,
    framework: str,
    reflection_prompt: str,
) -> PromptPair:
    user = (
        f"TODAY'S FRAMEWORK: {framework}\n"
        f'REFLECTION PROMPT: "{reflection_prompt}"\n'
        "\n"
        f"TRANSCRIPT:\n{transcript}\n"
        "\n"
        "Summarize the key reflection from this session."
    )
    return PromptPair(system=TRANSCRIPT_SUMMARY_SYSTEM_PROMPT, user=user)


def build_completion_quote_prompt(
    module_title: str,
    total_days: int,
    reflection_summaries: Iterable[Optional[str]],
    shift_actions: Iterable[Optional[str]],
    user_name: Optional[str] = None,
) -> PromptPair:
    """
    Ask for a short shareable quote closing out a finished module.

    Blank entries are dropped; an empty list renders an explicit placeholder
    so the model never sees an empty bullet.
    """
    reflections = "\n- ".join(s for s in reflection_summaries if s)
    actions = "\n- ".join(a for a in shift_actions if a)

    lines = [f'MODULE: "{module_title}" ({total_days}-day journey)']
    if user_name:
        lines.append(f"USER: {user_name}")
    lines += [
        "",
        "KEY REFLECTIONS:",
        f"- {reflections or NO_REFLECTIONS}",
        "",
        "ACTIONS TAKEN:",
        f"- {actions or NO_ACTIONS}",
        "",
        "Write a powerful, shareable closing quote that captures the essence of "
        "this person's growth journey.",
    ]
    return PromptPair(system=COMPLETION_QUOTE_SYSTEM_PROMPT, user="\n".join(lines))


# -----------------------------------------------------------------------------
# Summary chain
# -----------------------------------------------------------------------------


def build_previous_day_summaries(completed_days: Iterable[DayCompletion]) -> str:
    """
    Render completed days as context for later prompts.

    One line per day in day order: `Day N: <summary> Action taken: <action>`.
    Output longer than SUMMARY_CHAIN_LIMIT is cut and marked as truncated.
    """
    lines = []
    for day in sorted(completed_days, key=lambda d: d.day_number):
        line = f"Day {day.day_number}:"
        if day.reflection_summary:
            line += f" {day.reflection_summary}"
        if day.shift_action:
            line += f" Action taken: {day.shift_action}"
        lines.append(line)

    chain = "\n".join(lines)
    if len(chain) > SUMMARY_CHAIN_LIMIT:
        return chain[:SUMMARY_CHAIN_LIMIT] + "\n" + SUMMARY_CHAIN_TRUNCATED
    return chain
