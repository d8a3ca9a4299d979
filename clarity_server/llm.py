# clarity_server/llm.py
# ---------------------------------------------------------
# Model gateway + routine pipelines.
#
# One ModelGateway is built at startup (see app.create_app) and
# handed to each pipeline; nothing here reads the environment.
#
# Public helpers used by routes:
#   - generate_text_routine(gateway, settings, plan, struggle, goal)
#   - generate_routine_from_text(gateway, settings, plan, struggle, goal)
#   - generate_photo_routine(gateway, settings, plan, image_base64, ...)
#   - generate_quick_routine(gateway, settings, preset, plan)
# ---------------------------------------------------------

import logging
from typing import Any, Dict, Optional

from anthropic import Anthropic, APIError

from .config import Settings
from .errors import GenerationFailed
from .normalize import (
    normalize_quick_steps,
    normalize_routine,
    parse_json_object,
    split_steps,
)
from .presets import preset_text
from .prompts import (
    Prompt,
    UserContent,
    build_photo_prompt,
    build_plain_text_prompt,
    build_quick_prompt,
    build_text_routine_prompt,
)
from .schemas import PlanType

logger = logging.getLogger(__name__)

JSON_ONLY_INSTRUCTION = (
    "Reply with a single JSON object and nothing else: "
    "no Markdown code fences, no text before or after it."
)


class ModelGateway:
    """
    Thin wrapper around the Anthropic Messages API.

    invoke() returns the reply text; it never parses it. Transport errors
    and empty replies become GenerationFailed. No retries.
    """

    def __init__(self, client: Any):
        self._client = client

    @classmethod
    def from_settings(cls, settings: Settings) -> "ModelGateway":
        client = Anthropic(
            api_key=settings.anthropic_api_key,
            timeout=settings.request_timeout,
            max_retries=0,
        )
        logger.info("Anthropic client initialized; key prefix: %s", settings.key_prefix)
        logger.info(
            "Using models: text=%s vision=%s", settings.text_model, settings.vision_model
        )
        return cls(client)

    def invoke(
        self,
        model: str,
        system: str,
        user_content: UserContent,
        *,
        temperature: float,
        expect_json: bool = False,
        max_tokens: int = 1024,
    ) -> str:
        if expect_json:
            system = f"{system}\n\n{JSON_ONLY_INSTRUCTION}"

        try:
            resp = self._client.messages.create(
                model=model,
                max_tokens=max_tokens,
                temperature=temperature,
                system=system,
                messages=[{"role": "user", "content": user_content}],
            )
        except APIError as e:
            raise GenerationFailed(f"Model call failed: {e!r}") from e

        # anthropic python sdk returns a list of content blocks
        text = "".join(
            getattr(block, "text", "")
            for block in (resp.content or [])
            if getattr(block, "type", "text") == "text"
        ).strip()
        logger.debug(
            "Model %s replied (json=%s, %d chars): %s",
            model,
            expect_json,
            len(text),
            text[:200],
        )
        if not text:
            raise GenerationFailed(f"Empty completion content from {model}")
        return text

    def run(self, prompt: Prompt, settings: Settings, *, expect_json: bool) -> str:
        model = settings.vision_model if prompt.vision else settings.text_model
        return self.invoke(
            model,
            prompt.system,
            prompt.user,
            temperature=prompt.temperature,
            expect_json=expect_json,
            max_tokens=prompt.max_tokens,
        )


# -------------------------------------------------------------------
# Pipelines: prompt -> model -> normalizer
# -------------------------------------------------------------------

def generate_text_routine(
    gateway: ModelGateway,
    settings: Settings,
    plan: PlanType,
    struggle: str,
    goal: str,
) -> Dict[str, Any]:
    prompt = build_text_routine_prompt(plan, struggle, goal)
    raw = gateway.run(prompt, settings, expect_json=True)
    routine = normalize_routine(parse_json_object(raw))
    return {
        "planType": plan,
        "summary": routine["summary"],
        "steps": routine["steps"],
    }


def generate_routine_from_text(
    gateway: ModelGateway,
    settings: Settings,
    plan: PlanType,
    struggle: str,
    goal: str,
) -> Dict[str, Any]:
    """Legacy plain-text flow: a bullet list split into string steps."""
    prompt = build_plain_text_prompt(plan, struggle, goal)
    raw = gateway.run(prompt, settings, expect_json=False)
    return {"planType": plan, "steps": split_steps(raw)}


def generate_photo_routine(
    gateway: ModelGateway,
    settings: Settings,
    plan: PlanType,
    image_base64: str,
    room_name: Optional[str] = None,
    goal: Optional[str] = None,
    notes: Optional[str] = None,
) -> Dict[str, Any]:
    prompt = build_photo_prompt(
        plan, image_base64, room_name=room_name, goal=goal, notes=notes
    )
    raw = gateway.run(prompt, settings, expect_json=True)
    routine = normalize_routine(parse_json_object(raw))
    return {
        "planType": plan,
        "scanSummary": routine["scanSummary"],
        "hotspots": routine["hotspots"],
        "summary": routine["summary"],
        "steps": routine["steps"],
    }


def generate_quick_routine(
    gateway: ModelGateway,
    settings: Settings,
    preset: str,
    plan: PlanType,
) -> Dict[str, Any]:
    prompt = build_quick_prompt(preset, plan)
    raw = gateway.run(prompt, settings, expect_json=True)
    steps = normalize_quick_steps(parse_json_object(raw))["steps"]
    text = preset_text(preset)
    return {
        "preset": preset,
        "title": text.title,
        "subtitle": text.subtitle,
        "steps": steps,
        "planType": plan,
    }
