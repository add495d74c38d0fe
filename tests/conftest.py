"""Pytest configuration and shared fixtures."""
import asyncio
import json
import os

import pytest

from personachat.chat import ConversationCallback, ConversationController, StreamingClient
from personachat.config import GenerationConfig
from personachat.llm import LLMProvider, StreamingResponse, Turn
from personachat.memory import InMemoryMessageStore
from personachat.persona import PersonaContext, ResumeData


SAMPLE_BUNDLE = {
    "resume": {
        "name": "Jane Doe",
        "title": "Staff Engineer",
        "summary": "Engineer building reliable data platforms.",
        "skills": ["Python", "Kafka", "PostgreSQL"],
        "experience": [
            {
                "role": "Staff Engineer",
                "company": "Acme",
                "duration": "2019-2024",
                "description": ["Led the streaming platform rewrite"],
            },
            {
                "role": "Backend Engineer",
                "company": "Globex",
                "duration": "2015-2019",
                "description": [],
            },
        ],
        "education": [
            {"degree": "BSc Computer Science", "institution": "State University", "year": "2015"}
        ],
        "certifications": [],
    },
    "persona": {
        "name": "Jane Doe",
        "tone": "warm, precise",
        "description": "I build data platforms that do not wake people up at night.",
        "expertise": ["distributed systems", "data engineering", "mentoring"],
        "strengths": ["system design"],
        "identifier": "jane-doe-dev",
        "exampleResponses": ["What did you build at Acme?", "How do you mentor?"],
    },
}


@pytest.fixture(scope="session")
def api_keys():
    """Return API keys from environment."""
    return {
        "gemini": os.getenv("GEMINI_API_KEY"),
        "openai": os.getenv("OPENAI_API_KEY"),
    }


@pytest.fixture
def bundle_file(tmp_path):
    """Write the sample resume/persona bundle to a temporary file."""
    path = tmp_path / "jane.json"
    path.write_text(json.dumps(SAMPLE_BUNDLE))
    return path


@pytest.fixture
def resume():
    return ResumeData.model_validate(SAMPLE_BUNDLE["resume"])


@pytest.fixture
def persona():
    return PersonaContext.model_validate(SAMPLE_BUNDLE["persona"])


class FakeProvider(LLMProvider):
    """Provider that replays scripted fragments instead of calling an API.

    Args:
        fragments: Text fragments to yield, in order
        error: Exception raised after the fragments (or before any, if empty)
        gate: Event awaited before the first fragment is yielded
    """

    def __init__(
        self,
        fragments: list[str] | None = None,
        error: Exception | None = None,
        gate: asyncio.Event | None = None,
        usage: dict | None = None,
    ):
        self.fragments = list(fragments or [])
        self.error = error
        self.gate = gate
        self.usage = usage
        self.calls: list[tuple[str, list[Turn], str]] = []
        self.closed = False

    @property
    def model(self) -> str:
        return "fake-model"

    async def stream_reply(
        self,
        system_instruction: str,
        history: list[Turn],
        new_user_text: str,
        temperature: float = 0.7,
        **kwargs,
    ) -> StreamingResponse:
        self.calls.append((system_instruction, list(history), new_user_text))
        response = StreamingResponse(self._generate(lambda usage: response.set_usage(usage)))
        return response

    async def _generate(self, on_usage):
        if self.gate is not None:
            await self.gate.wait()
        for fragment in self.fragments:
            yield fragment
        if self.error is not None:
            raise self.error
        if self.usage:
            on_usage(self.usage)

    async def close(self) -> None:
        self.closed = True


class HangingProvider(FakeProvider):
    """Yields its fragments, then keeps the request open until it is released.

    ``released`` turns True once the upstream generator is closed or
    cancelled. Set ``hang`` to False to let later requests finish normally.
    """

    def __init__(self, fragments: list[str]):
        super().__init__(fragments)
        self.hang = True
        self.released = False

    async def _generate(self, on_usage):
        try:
            for fragment in self.fragments:
                yield fragment
            if self.hang:
                await asyncio.Event().wait()
        finally:
            self.released = True


class RecordingCallback(ConversationCallback):
    """Records every controller update for assertions."""

    def __init__(self):
        self.states = []
        self.notices = []
        self.updates = []

    def on_message_updated(self, message):
        self.updates.append((message.id, message.content))

    def on_state_changed(self, state):
        self.states.append(state)

    def on_notice(self, text, severity="information"):
        self.notices.append((text, severity))


@pytest.fixture
def fake_provider():
    return FakeProvider(["Hel", "lo ", "world"])


@pytest.fixture
def generation_config():
    return GenerationConfig(provider="gemini", api_key="test-key")


@pytest.fixture
def store():
    return InMemoryMessageStore()


@pytest.fixture
def callback():
    return RecordingCallback()


@pytest.fixture
def make_controller(store, callback, generation_config):
    """Build a controller around a provider, with instant typewriter ticks."""

    def _make(provider: LLMProvider | None = None, config: GenerationConfig | None = None):
        client = StreamingClient(config or generation_config, provider=provider)
        return ConversationController(store, client, callback, tick_interval=0)

    return _make


class FailingStore(InMemoryMessageStore):
    """Backend whose every operation fails."""

    async def load_history(self, conversation_key):
        raise ConnectionError("store offline")

    async def append_message(self, conversation_key, message):
        raise ConnectionError("store offline")

    async def update_feedback(self, message_id, feedback):
        raise ConnectionError("store offline")

    async def clear_history(self, conversation_key):
        raise ConnectionError("store offline")

    async def list_conversations(self):
        raise ConnectionError("store offline")
