# clarity_server/normalize.py
# ---------------------------------------------------------
# Reshape raw model output into the response contract.
#
# The model's reply is advisory: missing optional fields get
# defaults, and only unusable output (no JSON object, no lines)
# is treated as a failure.
# ---------------------------------------------------------

import json
import math
import re
from typing import Any, Dict, List, Optional, Union

from .errors import EmptyRoutine, InvalidModelOutput

_BULLET = re.compile(r"^[-•*](\s+|$)")


def split_steps(raw: Optional[str]) -> List[str]:
    """
    Turn a bullet-list reply into a list of steps.

    "- Step A\\n• Step B\\n\\nStep C" -> ["Step A", "Step B", "Step C"]
    """
    steps = []
    for line in _clean(raw or "").splitlines():
        line = line.strip()
        if not line:
            continue
        step = _BULLET.sub("", line, count=1).strip()
        if step:
            steps.append(step)

    if not steps:
        raise EmptyRoutine("Model returned an empty routine")
    return steps


# a reply may open with ```json and close with ```
_FENCED = re.compile(r"^```[\w-]*[ \t]*\n?(.*?)\n?```$", re.S)


def parse_json_object(raw: Optional[str]) -> Dict[str, Any]:
    """
    Pull the JSON object out of a model reply.

    The outermost {...} span is parsed, after unwrapping a markdown code
    fence, so a stray sentence before or after the object is tolerated.
    """
    text = (raw or "").strip()
    if not text:
        raise InvalidModelOutput("Model returned no JSON")

    fenced = _FENCED.match(text)
    if fenced:
        text = fenced.group(1).strip()
    start, end = text.find("{"), text.rfind("}")
    if start >= 0 and end > start:
        text = text[start : end + 1]

    try:
        data = json.loads(text)
    except ValueError as e:
        raise InvalidModelOutput(f"Model returned malformed JSON: {e}") from e
    if not isinstance(data, dict):
        raise InvalidModelOutput(
            f"Model returned JSON {type(data).__name__}, expected an object"
        )
    return data


def _clean(s: str) -> str:
    # lone surrogates (half an emoji) can't be encoded as UTF-8
    return s.encode("utf-8", "ignore").decode("utf-8")


def _text(value: Any) -> str:
    if value is None:
        return ""
    return _clean(value if isinstance(value, str) else str(value))


def _string_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    out = []
    for item in value:
        if isinstance(item, (dict, list)) or item is None:
            continue
        s = _text(item).strip()
        if s:
            out.append(s)
    return out


def _minutes(value: Any) -> Optional[Union[int, float]]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    if isinstance(value, str):
        try:
            n = float(value.strip())
        except ValueError:
            return None
        if not math.isfinite(n):
            return None
        return int(n) if n.is_integer() else n
    return None


def normalize_step(item: Any) -> Optional[Dict[str, Any]]:
    """
    Coerce one model step into a RoutineStep-shaped dict.

    Keys the model omitted stay omitted, except description which
    defaults to "". Returns None for items that can't be a step.
    """
    if isinstance(item, str):
        item = _text(item).strip()
        return {"description": item} if item else None
    if not isinstance(item, dict):
        return None

    step: Dict[str, Any] = {}
    if item.get("title") is not None:
        step["title"] = _text(item["title"])
    step["description"] = _text(item.get("description"))
    if "durationMinutes" in item:
        minutes = _minutes(item["durationMinutes"])
        if minutes is not None:
            step["durationMinutes"] = minutes
    return step


def normalize_steps(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    steps = []
    for item in value:
        step = normalize_step(item)
        if step is not None:
            steps.append(step)
    return steps


def normalize_routine(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Structured flows (from-text, from-photo).

    Always returns summary, scanSummary, hotspots and steps; callers
    pick the fields their route exposes.
    """
    return {
        "summary": _text(data.get("summary")),
        "scanSummary": _text(data.get("scanSummary")),
        "hotspots": _string_list(data.get("hotspots")),
        "steps": normalize_steps(data.get("steps")),
    }


def normalize_quick_steps(data: Dict[str, Any]) -> Dict[str, List[str]]:
    """Quick routines only carry plain string steps."""
    raw = data.get("steps")
    if not isinstance(raw, list):
        return {"steps": []}

    steps = []
    for item in raw:
        if isinstance(item, dict):
            item = item.get("description") or item.get("title")
        if item is None or isinstance(item, (dict, list)):
            continue
        s = _text(item).strip()
        if s:
            steps.append(s)
    return {"steps": steps}
