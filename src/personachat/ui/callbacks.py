"""Callback interface for conversation controller integration.

Hides the details of how the TUI receives updates from the controller.
Every controller call runs in an async worker on the app's event loop, so
widgets are updated directly.
"""

from typing import TYPE_CHECKING

from ..chat import ConversationCallback, ConversationState
from ..memory import ChatMessage
from .config import ERROR_NOTICE_TIMEOUT, NOTICE_TIMEOUT

if TYPE_CHECKING:
    from textual.app import App

    from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, StatusBar


class TUICallback(ConversationCallback):
    """Routes conversation updates and debug messages to TUI widgets."""

    def __init__(
        self,
        chat: "ChatHistoryWidget",
        status: "StatusBar",
        input_bar: "ChatInputBar",
        log_panel: "DebugPanel",
        app: "App | None" = None,
    ) -> None:
        self.chat = chat
        self.status = status
        self.input_bar = input_bar
        self.log_panel = log_panel
        self.app = app

    def _refresh_count(self) -> None:
        self.status.update_status(messages=self.chat.message_count)

    def on_messages_replaced(self, messages: list[ChatMessage]) -> None:
        self.chat.replace_messages(messages)
        self._refresh_count()

    def on_message_added(self, message: ChatMessage) -> None:
        self.chat.add_message(message)
        self._refresh_count()

    def on_message_updated(self, message: ChatMessage) -> None:
        self.chat.update_message(message)

    def on_state_changed(self, state: ConversationState) -> None:
        self.status.update_status(state=state.value)
        self.input_bar.set_busy(state is not ConversationState.IDLE)

    def on_notice(self, text: str, severity: str = "information") -> None:
        if self.app is None:
            return
        timeout = ERROR_NOTICE_TIMEOUT if severity == "error" else NOTICE_TIMEOUT
        self.app.notify(text, severity=severity, timeout=timeout)

    def debug(self, level: str, component: str, message: str) -> None:
        """Route debug messages to the log panel."""
        if level == "debug":
            self.log_panel.debug(component, message)
        elif level == "info":
            self.log_panel.info(component, message)
        elif level == "warning":
            self.log_panel.warning(component, message)
        elif level == "error":
            self.log_panel.error(component, message)
