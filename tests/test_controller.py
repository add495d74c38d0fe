"""Tests for the conversation controller."""
import asyncio

import pytest

from personachat.chat import ConversationController, ConversationState, StreamingClient
from personachat.chat.config import FAILURE_MESSAGES, INTERRUPTION_SEPARATOR
from personachat.config import GenerationConfig
from personachat.errors import ContentBlockedError, CredentialInvalidError, FailureKind
from personachat.llm import StreamingResponse
from personachat.memory import ChatMessage, Feedback, Role

from conftest import FailingStore, FakeProvider, HangingProvider

KEY = "jane-doe-dev"


class PausingProvider(FakeProvider):
    """Yields the first fragment, then waits for a release before the rest."""

    def __init__(self, fragments):
        super().__init__(fragments)
        self.release = asyncio.Event()

    async def _generate(self, on_usage):
        first, *rest = self.fragments
        yield first
        await self.release.wait()
        for fragment in rest:
            yield fragment


async def _wait_for_state(controller, state):
    while controller.state is not state:
        await asyncio.sleep(0)


class TestInitialize:
    @pytest.mark.asyncio
    async def test_fresh_conversation_gets_one_welcome(self, make_controller, store, persona, resume):
        controller = make_controller(FakeProvider(["hi"]))

        messages = await controller.initialize(KEY, persona, resume)

        assert len(messages) == 1
        assert messages[0].role is Role.ASSISTANT
        assert "Jane Doe" in messages[0].content
        assert "distributed systems and data engineering" in messages[0].content
        assert len(await store.load_history(KEY)) == 1

    @pytest.mark.asyncio
    async def test_initialize_again_does_not_add_welcome(self, make_controller, store, persona):
        controller = make_controller(FakeProvider(["hi"]))
        await controller.initialize(KEY, persona)
        await controller.initialize(KEY, persona)

        # A new session over the same store rehydrates instead of seeding
        other = make_controller(FakeProvider(["hi"]))
        messages = await other.initialize(KEY, persona)

        assert len(messages) == 1
        assert len(await store.load_history(KEY)) == 1

    @pytest.mark.asyncio
    async def test_rehydrates_stored_history(self, make_controller, store, persona):
        stored = [ChatMessage.assistant("welcome"), ChatMessage.user("Q"), ChatMessage.assistant("A")]
        for message in stored:
            await store.append_message(KEY, message)

        controller = make_controller(FakeProvider(["hi"]))
        messages = await controller.initialize(KEY, persona)

        assert [m.id for m in messages] == [m.id for m in stored]

    @pytest.mark.asyncio
    async def test_send_before_initialize_is_rejected(self, make_controller):
        controller = make_controller(FakeProvider(["hi"]))
        assert await controller.send("Hello?") is None
        assert controller.messages == []


class TestSend:
    @pytest.mark.asyncio
    async def test_reply_is_revealed_and_persisted(self, make_controller, store, callback, persona):
        controller = make_controller(FakeProvider(["Hel", "lo ", "world"]))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Say hello")

        assert reply.content == "Hello world"
        stored = await store.load_history(KEY)
        assert [m.content for m in stored][-2:] == ["Say hello", "Hello world"]
        assert controller.state is ConversationState.IDLE
        assert callback.states == [
            ConversationState.SENDING,
            ConversationState.STREAMING,
            ConversationState.REVEALING,
            ConversationState.IDLE,
        ]

    @pytest.mark.asyncio
    async def test_reveal_shows_growing_prefixes(self, make_controller, callback, persona):
        controller = make_controller(FakeProvider(["Hel", "lo ", "world"]))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Say hello")

        shown = [content for message_id, content in callback.updates if message_id == reply.id]
        assert shown[-1] == "Hello world"
        for previous, current in zip(shown, shown[1:]):
            assert current.startswith(previous)
            assert len(current) > len(previous)

    @pytest.mark.asyncio
    async def test_history_sent_is_normalized(self, make_controller, store, persona):
        await store.append_message(KEY, ChatMessage.assistant("hi"))
        await store.append_message(KEY, ChatMessage.user("Tell me about X"))
        provider = FakeProvider(["Y is great"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        await controller.send("Tell me about Y")

        _, history, text = provider.calls[0]
        assert history == []
        assert text == "Tell me about Y"

    @pytest.mark.asyncio
    async def test_prior_exchange_is_sent_as_history(self, make_controller, persona):
        provider = FakeProvider(["First answer"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)
        await controller.send("First question")
        await controller.send("Second question")

        _, history, text = provider.calls[1]
        assert [(t.role, t.text) for t in history] == [
            ("user", "First question"),
            ("model", "First answer"),
        ]
        assert text == "Second question"

    @pytest.mark.asyncio
    async def test_blank_input_is_rejected(self, make_controller, persona):
        controller = make_controller(FakeProvider(["hi"]))
        await controller.initialize(KEY, persona)

        assert await controller.send("   ") is None
        assert await controller.send("") is None
        assert len(controller.messages) == 1

    @pytest.mark.asyncio
    async def test_send_while_streaming_is_rejected(self, make_controller, persona):
        provider = PausingProvider(["Hel", "lo"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        task = asyncio.create_task(controller.send("First"))
        await _wait_for_state(controller, ConversationState.STREAMING)
        before = [m.id for m in controller.messages]

        assert await controller.send("Second") is None
        assert [m.id for m in controller.messages] == before
        assert controller.state is ConversationState.STREAMING
        assert len(provider.calls) == 1

        provider.release.set()
        reply = await task
        assert reply.content == "Hello"
        assert controller.state is ConversationState.IDLE

    @pytest.mark.asyncio
    async def test_store_outage_does_not_block_chat(self, generation_config, persona):
        client = StreamingClient(generation_config, provider=FakeProvider(["still ", "works"]))
        controller = ConversationController(FailingStore(), client, tick_interval=0)
        await controller.initialize(KEY, persona)

        reply = await controller.send("Anyone there?")

        assert reply.content == "still works"
        assert controller.state is ConversationState.IDLE
        # load, welcome, user message, reply
        assert controller.store.failure_count == 4


class TestFailures:
    @pytest.mark.asyncio
    async def test_empty_reply_becomes_error_text(self, make_controller, store, callback, persona):
        controller = make_controller(FakeProvider([]))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.EMPTY_REPLY]
        assert reply.content.strip()
        assert (await store.load_history(KEY))[-1].content == reply.content
        assert callback.notices[-1][1] == "error"

    @pytest.mark.asyncio
    async def test_missing_credential_then_next_send_accepted(self, make_controller, persona):
        controller = make_controller(config=GenerationConfig(provider="gemini", api_key=None))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.CREDENTIAL_MISSING]
        assert controller.state is ConversationState.IDLE

        second = await controller.send("Hello again?")
        assert second is not None
        assert len(controller.messages) == 5

    @pytest.mark.asyncio
    async def test_invalid_credential(self, make_controller, persona):
        controller = make_controller(FakeProvider(error=CredentialInvalidError("bad key")))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.CREDENTIAL_INVALID]

    @pytest.mark.asyncio
    async def test_interruption_keeps_partial_text(self, make_controller, store, persona):
        provider = FakeProvider(["Partial ", "answer"], error=ConnectionResetError("reset"))
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        reply = await controller.send("Tell me everything")

        note = FAILURE_MESSAGES[FailureKind.STREAM_INTERRUPTED]
        assert reply.content == "Partial answer" + INTERRUPTION_SEPARATOR + note
        assert (await store.load_history(KEY))[-1].content == reply.content

    @pytest.mark.asyncio
    async def test_interruption_without_text(self, make_controller, persona):
        controller = make_controller(FakeProvider(error=ConnectionResetError("reset")))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.STREAM_INTERRUPTED]

    @pytest.mark.asyncio
    async def test_blocked_reply_replaces_partial_text(self, make_controller, persona):
        provider = FakeProvider(["Something"], error=ContentBlockedError("SAFETY"))
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.CONTENT_BLOCKED]

    @pytest.mark.asyncio
    async def test_provider_setup_failure(self, make_controller, persona):
        class BrokenProvider(FakeProvider):
            async def stream_reply(self, *args, **kwargs) -> StreamingResponse:
                raise OSError("DNS failure")

        controller = make_controller(BrokenProvider())
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.STREAM_INTERRUPTED]
        assert controller.state is ConversationState.IDLE


class TestFeedback:
    @pytest.mark.asyncio
    async def test_same_value_twice_clears(self, make_controller, store, persona):
        controller = make_controller(FakeProvider(["Answer"]))
        await controller.initialize(KEY, persona)
        reply = await controller.send("Question")

        assert await controller.set_feedback(reply.id, "like") is Feedback.LIKE
        assert (await store.load_history(KEY))[-1].feedback is Feedback.LIKE

        assert await controller.set_feedback(reply.id, "like") is None
        assert (await store.load_history(KEY))[-1].feedback is None

    @pytest.mark.asyncio
    async def test_other_value_replaces(self, make_controller, store, persona):
        controller = make_controller(FakeProvider(["Answer"]))
        await controller.initialize(KEY, persona)
        reply = await controller.send("Question")

        await controller.set_feedback(reply.id, Feedback.LIKE)
        assert await controller.set_feedback(reply.id, Feedback.DISLIKE) is Feedback.DISLIKE
        assert (await store.load_history(KEY))[-1].feedback is Feedback.DISLIKE

    @pytest.mark.asyncio
    async def test_notice_when_recorded(self, make_controller, callback, persona):
        controller = make_controller(FakeProvider(["Answer"]))
        welcome = (await controller.initialize(KEY, persona))[0]

        await controller.set_feedback(welcome.id, Feedback.LIKE)

        assert ("Feedback recorded.", "information") in callback.notices

    @pytest.mark.asyncio
    async def test_unknown_id(self, make_controller, persona):
        controller = make_controller(FakeProvider(["Answer"]))
        await controller.initialize(KEY, persona)
        assert await controller.set_feedback("no-such-id", Feedback.LIKE) is None


class TestReset:
    @pytest.mark.asyncio
    async def test_reset_leaves_single_welcome(self, make_controller, store, persona):
        controller = make_controller(FakeProvider(["Answer"]))
        await controller.initialize(KEY, persona)
        for number in range(5):
            await controller.send(f"Question {number}")
        assert len(await store.load_history(KEY)) == 11

        welcome = await controller.reset()

        stored = await store.load_history(KEY)
        assert [m.id for m in stored] == [welcome.id]
        assert controller.messages == [welcome]
        assert "reset" in welcome.content.lower()

    @pytest.mark.asyncio
    async def test_reset_cancels_in_flight_reply(self, make_controller, store, persona):
        provider = PausingProvider(["Hel", "lo"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        task = asyncio.create_task(controller.send("First"))
        await _wait_for_state(controller, ConversationState.STREAMING)

        welcome = await controller.reset()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert controller.state is ConversationState.IDLE
        assert [m.id for m in await store.load_history(KEY)] == [welcome.id]

        provider.release.set()
        assert await controller.send("After reset") is not None

    @pytest.mark.asyncio
    async def test_reset_requires_initialize(self, make_controller):
        controller = make_controller(FakeProvider(["hi"]))
        with pytest.raises(RuntimeError):
            await controller.reset()


class TestCancellation:
    @pytest.mark.asyncio
    async def test_cancelled_send_releases_stream(self, make_controller, store, callback, persona):
        provider = HangingProvider(["Hel"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        task = asyncio.create_task(controller.send("First"))
        await _wait_for_state(controller, ConversationState.STREAMING)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert controller.state is ConversationState.IDLE
        assert provider.released
        assert [m.role for m in await store.load_history(KEY)] == [Role.ASSISTANT, Role.USER]

        updates = list(callback.updates)
        for _ in range(5):
            await asyncio.sleep(0)
        assert callback.updates == updates

        provider.hang = False
        reply = await controller.send("Second")
        assert reply is not None
        assert reply.content == "Hel"

    @pytest.mark.asyncio
    async def test_close_while_streaming(self, make_controller, store, persona):
        provider = HangingProvider(["Hel"])
        controller = make_controller(provider)
        await controller.initialize(KEY, persona)

        task = asyncio.create_task(controller.send("First"))
        await _wait_for_state(controller, ConversationState.STREAMING)
        await controller.close()

        with pytest.raises(asyncio.CancelledError):
            await task
        assert controller.state is ConversationState.IDLE
        assert provider.released
        assert [m.role for m in await store.load_history(KEY)] == [Role.ASSISTANT, Role.USER]


class TestWhitespaceReply:
    @pytest.mark.asyncio
    async def test_whitespace_only_reply_is_empty(self, make_controller, store, persona):
        controller = make_controller(FakeProvider(["  ", "\n"]))
        await controller.initialize(KEY, persona)

        reply = await controller.send("Hello?")

        assert reply.content == FAILURE_MESSAGES[FailureKind.EMPTY_REPLY]
        stored = await store.load_history(KEY)
        assert stored[-1].content == reply.content
        assert all(m.content.strip() for m in stored)
        assert controller.state is ConversationState.IDLE
