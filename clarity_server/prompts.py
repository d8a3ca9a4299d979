# clarity_server/prompts.py
# ---------------------------------------------------------
# Prompt builders for every routine flow.
#
# Pure functions: typed request values in, a Prompt out.
# Nothing here talks to the model service.
#
#   - build_text_routine_prompt   (from-text, JSON mode)
#   - build_plain_text_prompt     (legacy bullet-list flow)
#   - build_photo_prompt          (from-photo, vision + JSON mode)
#   - build_quick_prompt          (quick-routine presets, JSON mode)
# ---------------------------------------------------------

import json
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .presets import Preset, preset_text
from .schemas import PlanType

UserContent = Union[str, List[Dict[str, Any]]]

STEP_BANDS: Dict[PlanType, Tuple[int, int]] = {
    PlanType.FREE: (3, 5),
    PlanType.PREMIUM: (5, 8),
}

UNKNOWN_ROOM = "Unknown room"
NO_GOAL = "No specific goal"
NO_NOTES = "None"

FIVE_MIN_CONSTRAINT = (
    "Exactly 4–5 steps. Each step must be doable in ~60 seconds. "
    'Step 1 MUST be: "Set a 5-minute timer." '
    "Total should feel like ~5 minutes."
)


@dataclass(frozen=True)
class Prompt:
    system: str
    user: UserContent
    temperature: float
    max_tokens: int = 1024
    # vision prompts go to the vision model
    vision: bool = False


def step_band(plan: PlanType) -> Tuple[int, int]:
    return STEP_BANDS[plan]


def band_text(plan: PlanType) -> str:
    lo, hi = step_band(plan)
    return f"{lo}–{hi} steps"


def _dumps(payload: Dict[str, Any]) -> str:
    return json.dumps(payload, ensure_ascii=False)


# -------------------------------------------------------------------
# from-text (JSON mode)
# -------------------------------------------------------------------

TEXT_ROUTINE_SYSTEM = (
    "You are Clarity, a warm ADHD-friendly cleaning coach. "
    "You create tiny, kind micro-routines based on a user struggle and goal. "
    "Always respond with STRICT JSON ONLY matching: "
    '{ "summary": string, "steps": [ { "title": string, "description": string, '
    '"durationMinutes": number } ] }. '
    "Use 3–5 steps for free, 5–8 for premium. Each step should be 1–5 minutes. "
    "Be gentle and non-judgmental."
)


def build_text_routine_prompt(plan: PlanType, struggle: str, goal: str) -> Prompt:
    user = _dumps(
        {
            "planType": plan.value,
            "struggle": struggle,
            "goal": goal,
            "steps": band_text(plan),
        }
    )
    return Prompt(system=TEXT_ROUTINE_SYSTEM, user=user, temperature=0.8, max_tokens=1200)


# -------------------------------------------------------------------
# Legacy plain-text flow (bullet list, no JSON)
# -------------------------------------------------------------------

PLAIN_TEXT_SYSTEM = (
    "You are Clarity, a gentle ADHD-friendly cleaning coach. "
    "You always respond with clear bullet lists."
)


def build_plain_text_prompt(plan: PlanType, struggle: str, goal: str) -> Prompt:
    plan_label = (
        "Free (short, gentle)" if plan is PlanType.FREE else "Premium (longer, detailed)"
    )
    user = (
        "You are Clarity, an ADHD-friendly cleaning coach.\n\n"
        f"User struggle: {struggle}\n"
        f"User goal: {goal}\n"
        f"Plan type: {plan_label}.\n\n"
        "Return a cleaning routine as a simple bullet list.\n"
        f"- {band_text(plan)} for this plan\n"
        "- Language: simple English\n"
        "- No text before or after, ONLY the list of steps, one per line, as bullets.\n"
        "Example format:\n"
        "• Step 1...\n"
        "• Step 2...\n"
        "• Step 3...\n"
    )
    return Prompt(system=PLAIN_TEXT_SYSTEM, user=user, temperature=0.7, max_tokens=600)


# -------------------------------------------------------------------
# from-photo (vision + JSON mode)
# -------------------------------------------------------------------

PHOTO_SYSTEM = (
    "You are Clarity, an ADHD-friendly home organization AI. "
    "You analyze a room photo and create a gentle, realistic micro-routine. "
    "You MUST respond with JSON ONLY, matching: "
    '{ "scanSummary": string, "hotspots": string[], "summary": string, '
    '"steps": [ { "title": string, "description": string, "durationMinutes": number } ] }. '
    "Use 3–5 steps for free, 5–8 steps for premium. Be very kind and non-judgmental. "
    "When asked multiple times for the same photo, vary the routine "
    "(don't repeat wording verbatim)."
)

PHOTO_TASKS = (
    "Tasks:\n"
    "1) Identify clutter hotspots.\n"
    "2) Summarize what you see.\n"
    "3) Propose a tiny routine they can do today."
)

_DATA_URI = re.compile(r"^data:(?P<mime>image/[\w.+-]+);base64,", re.I)

# first bytes of each format, as they look once base64-encoded
_BASE64_SIGNATURES = (
    ("/9j/", "image/jpeg"),
    ("iVBORw0KGgo", "image/png"),
    ("R0lGOD", "image/gif"),
    ("UklGR", "image/webp"),
)


def split_image_payload(image_base64: str) -> Tuple[str, str]:
    """
    Return (media_type, data) for an image sent as base64.

    Clients are supposed to send the bare payload, but a data URI prefix
    is stripped if present. Unknown signatures are treated as JPEG.
    """
    data = image_base64.strip()
    declared: Optional[str] = None
    m = _DATA_URI.match(data)
    if m:
        declared = m.group("mime").lower()
        data = data[m.end():]

    for prefix, media_type in _BASE64_SIGNATURES:
        if data.startswith(prefix):
            return media_type, data
    return declared or "image/jpeg", data


def build_photo_prompt(
    plan: PlanType,
    image_base64: str,
    room_name: Optional[str] = None,
    goal: Optional[str] = None,
    notes: Optional[str] = None,
) -> Prompt:
    media_type, data = split_image_payload(image_base64)
    text = (
        f"Plan type: {plan.value} ({band_text(plan)})\n"
        f"Room name: {room_name or UNKNOWN_ROOM}\n"
        f"User goal: {goal or NO_GOAL}\n"
        f"Extra notes: {notes or NO_NOTES}\n\n"
        f"{PHOTO_TASKS}"
    )
    user: List[Dict[str, Any]] = [
        {"type": "text", "text": text},
        {
            "type": "image",
            "source": {"type": "base64", "media_type": media_type, "data": data},
        },
    ]
    return Prompt(
        system=PHOTO_SYSTEM, user=user, temperature=0.8, max_tokens=1500, vision=True
    )


# -------------------------------------------------------------------
# quick-routine presets (JSON mode)
# -------------------------------------------------------------------

QUICK_SYSTEM = (
    "You are Clarity, an ADHD-friendly cleaning assistant. "
    "You generate quick micro-routines for different emotional modes. "
    'You MUST respond with JSON ONLY: { "steps": string[] }. '
    "Each step = 1 short sentence, gentle tone, doable in under 1–2 minutes. "
    "IMPORTANT: If asked again for the same preset, produce a DIFFERENT routine: "
    "vary actions, order, focus area, and wording; do not repeat steps verbatim."
)


def quick_constraints(preset: Optional[str], plan: PlanType) -> str:
    if plan is PlanType.FREE:
        base = f"Return {band_text(plan)} max."
    else:
        base = f"Return {band_text(plan)}, a bit more detailed."

    parts = [base]
    if preset == Preset.FIVE_MIN.value:
        parts.append(FIVE_MIN_CONSTRAINT)
    return " ".join(parts)


def build_quick_prompt(preset: str, plan: PlanType) -> Prompt:
    user = _dumps(
        {
            "preset": preset,
            "planType": plan.value,
            "description": preset_text(preset).description,
            "constraints": quick_constraints(preset, plan),
        }
    )
    return Prompt(system=QUICK_SYSTEM, user=user, temperature=0.9, max_tokens=800)
