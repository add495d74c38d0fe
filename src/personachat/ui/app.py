"""Textual front end for one persona conversation.

The app owns a ConversationController; widgets only render what its
callback reports, and every controller call runs in a worker.
"""

import asyncio
import contextlib

from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header

from ..chat import ConversationController, StreamingClient
from ..memory import Feedback, MessageStore
from ..persona import PersonaContext, ResumeData
from .callbacks import TUICallback
from .config import RESET_PROMPT, LogLevel
from .screens import ConfirmationScreen
from .styles import APP_CSS
from .themes import PERSONA_SLATE, THEME_NAME
from .widgets import (
    ChatHistoryWidget,
    ChatInputBar,
    DebugPanel,
    MessageView,
    PersonaPanel,
    StatusBar,
)


class PersonaChatApp(App):
    """Textual TUI for chatting with a persona."""

    CSS = APP_CSS
    TITLE = "PersonaChat"

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit"),
        Binding("f2", "like", "Like"),
        Binding("f3", "dislike", "Dislike"),
        Binding("ctrl+k", "reset", "Reset", priority=True),
        Binding("f4", "toggle_debug", "Log"),
        Binding("f5", "suggest", "Suggest"),
        Binding("f6", "copy_last_response", "Copy Reply"),
        Binding("ctrl+b", "toggle_maximize_chat", "Max Chat"),
    ]

    def __init__(
        self,
        store: MessageStore,
        client: StreamingClient,
        persona: PersonaContext,
        resume: ResumeData | None = None,
        conversation_key: str = "default",
        log_level: str | None = None,
    ) -> None:
        super().__init__()
        self._persona = persona
        self._resume = resume
        self._conversation_key = conversation_key
        self._log_level = log_level
        self._client = client
        self._controller = ConversationController(store, client)
        self._suggestion_index = 0

    @property
    def controller(self) -> ConversationController:
        return self._controller

    def compose(self) -> ComposeResult:
        yield Header(show_clock=True)

        yield ChatHistoryWidget(id="chat-history", persona_name=self._persona.name)

        with Vertical(id="right-panel"):
            yield PersonaPanel(id="persona-panel")
            yield DebugPanel(id="debug-panel")

        with Vertical(id="bottom-bar"):
            yield StatusBar(id="status-bar")
            yield ChatInputBar(id="chat-input-bar")

        yield Footer()

    def on_mount(self) -> None:
        """Wire the controller callback, then connect and rehydrate in a worker."""
        self.register_theme(PERSONA_SLATE)
        self.theme = THEME_NAME

        log_panel = self.query_one("#debug-panel", DebugPanel)
        if self._log_level is not None:
            log_panel.log_level = LogLevel.from_string(self._log_level)
            log_panel.show()
            log_panel.info("TUI", f"Log panel enabled with level: {self._log_level.upper()}")

        callback = TUICallback(
            chat=self.query_one("#chat-history", ChatHistoryWidget),
            status=self.query_one("#status-bar", StatusBar),
            input_bar=self.query_one("#chat-input-bar", ChatInputBar),
            log_panel=log_panel,
            app=self,
        )
        self._controller.set_callback(callback)
        self._controller.set_debug_callback(callback.debug)

        self.query_one("#persona-panel", PersonaPanel).show_persona(self._persona)
        self.sub_title = f"{self._persona.name} | {self._client.config.resolved_model}"
        self.query_one("#status-bar", StatusBar).update_status(
            store_backend=self._controller.store.backend_type
        )

        self._initialize()
        self.query_one("#chat-input-bar", ChatInputBar).focus_input()

    def _refresh_status(self) -> None:
        status = self.query_one("#status-bar", StatusBar)
        usage = self._client.last_usage or {}
        status.update_status(
            input_tokens=usage.get("prompt_tokens") or 0,
            output_tokens=usage.get("completion_tokens") or 0,
            store_failures=self._controller.store.failure_count,
        )

    @work(group="lifecycle")
    async def _initialize(self) -> None:
        """Connect the store and rehydrate the conversation."""
        await self._controller.store.connect()
        await self._controller.initialize(self._conversation_key, self._persona, self._resume)
        self._refresh_status()

    def on_chat_input_bar_submitted(self, event: ChatInputBar.Submitted) -> None:
        if self._controller.busy:
            self.notify("Still replying, please wait", severity="warning", timeout=2)
            return
        self._send(event.value)

    @work(group="send")
    async def _send(self, text: str) -> None:
        """Send a message and stream the reply as a background async worker."""
        try:
            await self._controller.send(text)
        except asyncio.CancelledError:
            self.query_one("#debug-panel", DebugPanel).info("TUI", "Reply cancelled")
            raise
        finally:
            self._refresh_status()

    def on_message_view_selected(self, event: MessageView.Selected) -> None:
        self.query_one("#chat-history", ChatHistoryWidget).select(event.message_id)

    def _apply_feedback(self, value: Feedback) -> None:
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        target = chat.feedback_target()
        if target is None:
            self.notify("No reply to rate", severity="warning", timeout=2)
            return
        self._feedback(target, value)

    @work(group="feedback")
    async def _feedback(self, message_id: str, value: Feedback) -> None:
        await self._controller.set_feedback(message_id, value)
        self._refresh_status()

    def action_like(self) -> None:
        """Toggle 'like' on the selected (or last) reply."""
        self._apply_feedback(Feedback.LIKE)

    def action_dislike(self) -> None:
        """Toggle 'dislike' on the selected (or last) reply."""
        self._apply_feedback(Feedback.DISLIKE)

    def action_reset(self) -> None:
        """Ask for confirmation, then reset the conversation."""
        def _on_confirmed(confirmed: bool | None) -> None:
            if confirmed:
                self._reset()
            else:
                self.notify("Reset cancelled", timeout=2)

        self.push_screen(
            ConfirmationScreen(RESET_PROMPT, title="Reset conversation"),
            callback=_on_confirmed,
        )

    @work(group="lifecycle")
    async def _reset(self) -> None:
        await self._controller.reset()
        self._refresh_status()

    def action_toggle_debug(self) -> None:
        log_panel = self.query_one("#debug-panel", DebugPanel)
        is_visible = log_panel.toggle()
        self.notify(f"Log panel {'shown' if is_visible else 'hidden'}", timeout=2)

    def action_suggest(self) -> None:
        """Cycle suggested questions into the input."""
        suggestions = self._persona.example_responses
        if not suggestions:
            self.notify("No suggestions for this persona", timeout=2)
            return
        question = suggestions[self._suggestion_index % len(suggestions)]
        self._suggestion_index += 1
        self.query_one("#chat-input-bar", ChatInputBar).set_text(question)

    def action_toggle_maximize_chat(self) -> None:
        """Give the chat the full width, hiding the persona and log column."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        right = self.query_one("#right-panel", Vertical)
        if chat.has_class("-maximized"):
            chat.remove_class("-maximized")
            right.display = True
        else:
            chat.add_class("-maximized")
            right.display = False

    def action_copy_last_response(self) -> None:
        """Copy last persona reply to clipboard."""
        chat = self.query_one("#chat-history", ChatHistoryWidget)
        response = chat.get_last_response()
        if response:
            self.copy_to_clipboard(response)
            self.notify("Reply copied")
        else:
            self.notify("No reply to copy", severity="warning")


async def run_textual_tui(
    store: MessageStore,
    client: StreamingClient,
    persona: PersonaContext,
    resume: ResumeData | None = None,
    conversation_key: str = "default",
    log_level: str | None = None,
) -> None:
    """Run the Textual TUI.

    Args:
        store: Message store backend (connected by the app)
        client: Streaming client for replies
        persona: Persona to chat with
        resume: Structured resume backing the persona
        conversation_key: Key the conversation is stored under
        log_level: Log level for panel (debug/info/warning/error), None to hide
    """
    app = PersonaChatApp(
        store=store,
        client=client,
        persona=persona,
        resume=resume,
        conversation_key=conversation_key,
        log_level=log_level,
    )
    try:
        await app.run_async()
    except (KeyboardInterrupt, asyncio.CancelledError):
        pass
    finally:
        with contextlib.suppress(Exception):
            await app.controller.close()
