"""Unit tests for clarity_server.llm — gateway and routine pipelines."""

import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import anthropic
import httpx
import pytest

from clarity_server.errors import EmptyRoutine, GenerationFailed, InvalidModelOutput
from clarity_server.llm import (
    JSON_ONLY_INSTRUCTION,
    ModelGateway,
    generate_photo_routine,
    generate_quick_routine,
    generate_routine_from_text,
    generate_text_routine,
)
from clarity_server.schemas import PlanType


def _reply(*texts):
    return SimpleNamespace(content=[SimpleNamespace(type="text", text=t) for t in texts])


@pytest.fixture
def client() -> MagicMock:
    client = MagicMock()
    client.messages.create.return_value = _reply('{"steps": []}')
    return client


class TestModelGateway:
    def test_passes_call_through(self, client):
        gateway = ModelGateway(client)
        out = gateway.invoke("m", "be kind", "hello", temperature=0.5, max_tokens=99)

        assert out == '{"steps": []}'
        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["system"] == "be kind"
        assert kwargs["temperature"] == 0.5
        assert kwargs["max_tokens"] == 99
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]

    def test_json_mode_appends_instruction(self, client):
        ModelGateway(client).invoke("m", "be kind", "hi", temperature=0.5, expect_json=True)
        system = client.messages.create.call_args.kwargs["system"]
        assert system.startswith("be kind")
        assert system.endswith(JSON_ONLY_INSTRUCTION)

    def test_multimodal_content_passed_as_is(self, client):
        blocks = [{"type": "text", "text": "look"}, {"type": "image", "source": {}}]
        ModelGateway(client).invoke("m", "s", blocks, temperature=0.8)
        messages = client.messages.create.call_args.kwargs["messages"]
        assert messages[0]["content"] is blocks

    def test_joins_text_blocks_and_skips_others(self, client):
        client.messages.create.return_value = SimpleNamespace(
            content=[
                SimpleNamespace(type="text", text="- one\n"),
                SimpleNamespace(type="tool_use", id="x"),
                SimpleNamespace(type="text", text="- two"),
            ]
        )
        assert ModelGateway(client).invoke("m", "s", "u", temperature=0.7) == "- one\n- two"

    @pytest.mark.parametrize("content", [[], None, [SimpleNamespace(type="text", text="   ")]])
    def test_empty_reply_is_generation_failed(self, client, content):
        client.messages.create.return_value = SimpleNamespace(content=content)
        with pytest.raises(GenerationFailed):
            ModelGateway(client).invoke("m", "s", "u", temperature=0.7)

    def test_api_error_is_generation_failed(self, client):
        request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
        client.messages.create.side_effect = anthropic.APIConnectionError(request=request)
        with pytest.raises(GenerationFailed):
            ModelGateway(client).invoke("m", "s", "u", temperature=0.7)

    def test_from_settings_disables_retries(self, settings, monkeypatch):
        created = {}

        def fake_anthropic(**kwargs):
            created.update(kwargs)
            return MagicMock()

        monkeypatch.setattr("clarity_server.llm.Anthropic", fake_anthropic)
        ModelGateway.from_settings(settings)
        assert created["api_key"] == "sk-ant-test-key"
        assert created["max_retries"] == 0
        assert created["timeout"] == settings.request_timeout


class TestPipelines:
    def test_text_routine(self, gateway, settings):
        gateway.reply_json({"summary": "Small start", "steps": [{"description": "x"}]})
        out = generate_text_routine(gateway, settings, PlanType.FREE, "mess", "tidy")

        assert out == {
            "planType": PlanType.FREE,
            "summary": "Small start",
            "steps": [{"description": "x"}],
        }
        assert gateway.last["model"] == "text-model"
        assert gateway.last["expect_json"] is True

    def test_text_routine_bad_json(self, gateway, settings):
        gateway.reply = "I can't do that"
        with pytest.raises(InvalidModelOutput):
            generate_text_routine(gateway, settings, PlanType.FREE, "mess", "tidy")

    def test_plain_text_routine(self, gateway, settings):
        gateway.reply = "- Step A\n• Step B\n\nStep C"
        out = generate_routine_from_text(gateway, settings, PlanType.PREMIUM, "mess", "tidy")

        assert out == {"planType": PlanType.PREMIUM, "steps": ["Step A", "Step B", "Step C"]}
        assert gateway.last["expect_json"] is False
        assert gateway.last["temperature"] == 0.7

    def test_plain_text_routine_empty(self, gateway, settings):
        gateway.reply = "\n\n"
        with pytest.raises(EmptyRoutine):
            generate_routine_from_text(gateway, settings, PlanType.FREE, "mess", "tidy")

    def test_photo_routine_uses_vision_model(self, gateway, settings):
        gateway.reply_json({"hotspots": ["desk"]})
        out = generate_photo_routine(gateway, settings, PlanType.FREE, "/9j/abc", room_name="Office")

        assert out == {
            "planType": PlanType.FREE,
            "scanSummary": "",
            "hotspots": ["desk"],
            "summary": "",
            "steps": [],
        }
        assert gateway.last["model"] == "vision-model"
        assert gateway.last["user"][1]["source"]["data"] == "/9j/abc"

    def test_quick_routine(self, gateway, settings):
        gateway.reply_json({"steps": ["Set a 5-minute timer.", "Clear one surface."]})
        out = generate_quick_routine(gateway, settings, "fiveMin", PlanType.FREE)

        assert out == {
            "preset": "fiveMin",
            "title": "5-minute reset",
            "subtitle": "A quick reset to regain clarity.",
            "steps": ["Set a 5-minute timer.", "Clear one surface."],
            "planType": PlanType.FREE,
        }
        constraints = json.loads(gateway.last["user"])["constraints"]
        assert 'Step 1 MUST be: "Set a 5-minute timer."' in constraints
        assert "Exactly 4–5 steps" in constraints

    def test_generation_failure_propagates(self, gateway, settings):
        gateway.reply = GenerationFailed("down")
        with pytest.raises(GenerationFailed):
            generate_quick_routine(gateway, settings, "guests", PlanType.FREE)
