"""Unit tests for the message store backends."""
import pytest

from personachat.config import StoreConfig
from personachat.memory import (
    ChatMessage,
    Feedback,
    InMemoryMessageStore,
    MessageStore,
    Role,
    SafeMessageStore,
    create_message_store,
    store_from_config,
)
from personachat.memory.sqlite import SQLiteMessageStore

from conftest import FailingStore


class TestMessageStoreInterface:
    def test_store_is_abstract(self):
        """Test that MessageStore cannot be instantiated directly."""
        with pytest.raises(TypeError):
            MessageStore()  # type: ignore


class TestChatMessage:
    def test_ids_are_unique(self):
        assert ChatMessage.user("a").id != ChatMessage.user("a").id

    def test_constructors_set_role(self):
        assert ChatMessage.user("hi").role is Role.USER
        assert ChatMessage.assistant().role is Role.ASSISTANT
        assert ChatMessage.assistant().content == ""
        assert ChatMessage.assistant().feedback is None

    def test_id_is_immutable(self):
        message = ChatMessage.user("hi")
        with pytest.raises(Exception):
            message.id = "other"


@pytest.fixture(params=["memory", "sqlite"])
async def backend(request, tmp_path):
    """Each concrete backend, connected."""
    if request.param == "memory":
        store = InMemoryMessageStore()
    else:
        store = SQLiteMessageStore(tmp_path / "messages.db")
    await store.connect()
    yield store
    await store.disconnect()


class TestBackends:
    """Behaviour shared by every backend."""

    @pytest.mark.asyncio
    async def test_load_unknown_key_is_empty(self, backend):
        assert await backend.load_history("nobody") == []

    @pytest.mark.asyncio
    async def test_append_preserves_order(self, backend):
        messages = [ChatMessage.assistant("welcome"), ChatMessage.user("q"), ChatMessage.assistant("a")]
        for message in messages:
            await backend.append_message("jane", message)

        loaded = await backend.load_history("jane")
        assert [m.id for m in loaded] == [m.id for m in messages]
        assert [m.content for m in loaded] == ["welcome", "q", "a"]
        assert [m.role for m in loaded] == [Role.ASSISTANT, Role.USER, Role.ASSISTANT]

    @pytest.mark.asyncio
    async def test_conversations_are_isolated(self, backend):
        await backend.append_message("a", ChatMessage.user("for a"))
        await backend.append_message("b", ChatMessage.user("for b"))
        assert [m.content for m in await backend.load_history("a")] == ["for a"]

    @pytest.mark.asyncio
    async def test_update_feedback(self, backend):
        message = ChatMessage.assistant("answer")
        await backend.append_message("jane", message)

        await backend.update_feedback(message.id, Feedback.LIKE)
        assert (await backend.load_history("jane"))[0].feedback is Feedback.LIKE

        await backend.update_feedback(message.id, None)
        assert (await backend.load_history("jane"))[0].feedback is None

    @pytest.mark.asyncio
    async def test_update_feedback_unknown_id_is_noop(self, backend):
        await backend.update_feedback("missing", Feedback.DISLIKE)

    @pytest.mark.asyncio
    async def test_clear_history_only_affects_key(self, backend):
        await backend.append_message("a", ChatMessage.user("x"))
        await backend.append_message("b", ChatMessage.user("y"))
        await backend.clear_history("a")
        assert await backend.load_history("a") == []
        assert len(await backend.load_history("b")) == 1

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, backend):
        message = ChatMessage.user("once")
        await backend.append_message("jane", message)
        with pytest.raises(Exception):
            await backend.append_message("jane", message)

    @pytest.mark.asyncio
    async def test_list_conversations(self, backend):
        await backend.append_message("a", ChatMessage.user("x"))
        await backend.append_message("b", ChatMessage.user("y"))
        await backend.append_message("b", ChatMessage.assistant("z"))
        assert dict(await backend.list_conversations()) == {"a": 1, "b": 2}


class TestSQLiteMessageStore:
    @pytest.mark.asyncio
    async def test_history_survives_reconnect(self, tmp_path):
        path = tmp_path / "persist.db"
        store = SQLiteMessageStore(path)
        await store.connect()
        message = ChatMessage.assistant("remember me")
        await store.append_message("jane", message)
        await store.disconnect()

        reopened = SQLiteMessageStore(path)
        await reopened.connect()
        loaded = await reopened.load_history("jane")
        await reopened.disconnect()

        assert len(loaded) == 1
        assert loaded[0].id == message.id
        assert loaded[0].timestamp == message.timestamp

    @pytest.mark.asyncio
    async def test_requires_connection(self, tmp_path):
        store = SQLiteMessageStore(tmp_path / "unused.db")
        with pytest.raises(RuntimeError, match="not connected"):
            await store.load_history("jane")


class TestSafeMessageStore:
    """Persistence failures are reported, never raised."""

    @pytest.mark.asyncio
    async def test_failures_degrade_and_are_reported(self):
        events = []
        store = SafeMessageStore(FailingStore())
        store.set_debug_callback(lambda level, component, message: events.append((level, component)))

        assert await store.load_history("jane") == []
        await store.append_message("jane", ChatMessage.user("lost"))
        await store.update_feedback("id", Feedback.LIKE)
        await store.clear_history("jane")
        assert await store.list_conversations() == []

        assert store.failure_count == 5
        assert events.count(("error", "Store")) == 5

    @pytest.mark.asyncio
    async def test_passes_through_on_success(self):
        store = SafeMessageStore(InMemoryMessageStore())
        message = ChatMessage.user("kept")
        await store.append_message("jane", message)
        assert [m.id for m in await store.load_history("jane")] == [message.id]
        assert store.failure_count == 0
        assert store.backend_type == "memory"


class TestStoreFactory:
    def test_create_memory_store(self):
        assert isinstance(create_message_store("memory"), InMemoryMessageStore)

    def test_create_sqlite_store(self, tmp_path):
        store = create_message_store("sqlite", path=tmp_path / "x.db")
        assert isinstance(store, SQLiteMessageStore)
        assert store.db_path == tmp_path / "x.db"

    def test_unknown_backend_raises(self):
        with pytest.raises(ValueError):
            create_message_store("redis")

    def test_store_from_config(self, tmp_path):
        store = store_from_config(StoreConfig(backend="sqlite", path=tmp_path / "c.db"))
        assert store.backend_type == "sqlite"
        assert store_from_config(StoreConfig(backend="memory")).backend_type == "memory"
