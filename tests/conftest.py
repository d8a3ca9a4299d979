"""Shared pytest fixtures for Clarity tests."""

import json
from typing import Any, Dict, Generator, List, Optional, Union

import pytest
from fastapi.testclient import TestClient

from clarity_server.app import create_app
from clarity_server.config import Settings
from clarity_server.llm import ModelGateway


class FakeGateway(ModelGateway):
    """Records every invoke() and answers with a canned reply.

    Set ``reply`` to a string to return it, or to an exception instance
    to raise it.
    """

    def __init__(self, reply: Union[str, Exception] = "{}"):
        super().__init__(client=None)
        self.reply = reply
        self.calls: List[Dict[str, Any]] = []

    def invoke(self, model, system, user_content, *, temperature, expect_json=False, max_tokens=1024):
        self.calls.append(
            {
                "model": model,
                "system": system,
                "user": user_content,
                "temperature": temperature,
                "expect_json": expect_json,
                "max_tokens": max_tokens,
            }
        )
        if isinstance(self.reply, Exception):
            raise self.reply
        return self.reply

    @property
    def last(self) -> Optional[Dict[str, Any]]:
        return self.calls[-1] if self.calls else None

    def reply_json(self, payload: Dict[str, Any]) -> None:
        self.reply = json.dumps(payload)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        anthropic_api_key="sk-ant-test-key",
        text_model="text-model",
        vision_model="vision-model",
    )


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


@pytest.fixture
def test_client(settings: Settings, gateway: FakeGateway) -> Generator[TestClient, None, None]:
    """TestClient over an app wired to the fake gateway."""
    app = create_app(settings, gateway)
    with TestClient(app) as client:
        yield client
