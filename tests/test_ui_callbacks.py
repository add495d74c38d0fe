"""Tests for routing controller updates to TUI widgets."""
import pytest

from personachat.chat import ConversationState
from personachat.memory import ChatMessage
from personachat.ui.callbacks import TUICallback
from personachat.ui.config import ERROR_NOTICE_TIMEOUT, NOTICE_TIMEOUT


class RecordingWidget:
    """Stands in for a widget or the app; records every method call."""

    message_count = 3

    def __init__(self):
        self.calls = []

    def __getattr__(self, name):
        def record(*args, **kwargs):
            self.calls.append((name, args, kwargs))
        return record


@pytest.fixture
def widgets():
    return {
        "chat": RecordingWidget(),
        "status": RecordingWidget(),
        "input_bar": RecordingWidget(),
        "log_panel": RecordingWidget(),
        "app": RecordingWidget(),
    }


@pytest.fixture
def tui_callback(widgets):
    return TUICallback(**widgets)


class TestTUICallback:
    def test_message_added_updates_chat_and_count(self, tui_callback, widgets):
        message = ChatMessage.user("Hi")

        tui_callback.on_message_added(message)

        assert widgets["chat"].calls == [("add_message", (message,), {})]
        assert widgets["status"].calls == [("update_status", (), {"messages": 3})]

    def test_message_updated(self, tui_callback, widgets):
        message = ChatMessage.assistant("Hel")
        tui_callback.on_message_updated(message)
        assert widgets["chat"].calls == [("update_message", (message,), {})]

    def test_state_change_sets_busy(self, tui_callback, widgets):
        tui_callback.on_state_changed(ConversationState.STREAMING)
        tui_callback.on_state_changed(ConversationState.IDLE)

        assert widgets["status"].calls == [
            ("update_status", (), {"state": "streaming"}),
            ("update_status", (), {"state": "idle"}),
        ]
        assert widgets["input_bar"].calls == [
            ("set_busy", (True,), {}),
            ("set_busy", (False,), {}),
        ]

    def test_notices_use_severity_timeouts(self, tui_callback, widgets):
        tui_callback.on_notice("Feedback recorded.")
        tui_callback.on_notice("No key", "error")

        assert widgets["app"].calls == [
            ("notify", ("Feedback recorded.",), {"severity": "information", "timeout": NOTICE_TIMEOUT}),
            ("notify", ("No key",), {"severity": "error", "timeout": ERROR_NOTICE_TIMEOUT}),
        ]

    def test_notice_without_app_is_ignored(self, widgets):
        widgets["app"] = None
        TUICallback(**widgets).on_notice("Hi")

    @pytest.mark.parametrize("level", ["debug", "info", "warning", "error"])
    def test_debug_routes_by_level(self, tui_callback, widgets, level):
        tui_callback.debug(level, "Store", "append failed")
        assert widgets["log_panel"].calls == [(level, ("Store", "append failed"), {})]
