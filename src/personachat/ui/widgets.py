"""Widgets for the persona chat screen.

Hidden design decisions:
- Input history management and busy gating
- Status line formatting
- Log rendering and level filtering
- Chat message rendering and in-place updates
"""

from datetime import datetime

from rich.markdown import Markdown
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import Click
from textual.message import Message
from textual.widgets import Button, RichLog, Static, TextArea

from ..memory import ChatMessage, Role
from ..persona import PersonaContext
from .config import (
    FEEDBACK_MARKERS,
    LOG_MAX_MESSAGE_LENGTH,
    LOG_TIMESTAMP_FORMAT,
    STATE_LABELS,
    LogLevel,
)


class ChatInputBar(Horizontal):
    """Chat input bar with TextArea and Send button.

    While busy, submissions are refused and the typed text is kept.
    """

    class Submitted(Message):
        """Posted with the typed text when the user sends."""

        def __init__(self, value: str) -> None:
            super().__init__()
            self.value = value

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._history: list[str] = []
        self._history_index: int = -1
        self._busy = False

    def compose(self):
        text_area = TextArea(id="chat-input", show_line_numbers=False)
        text_area.cursor_blink = False
        yield text_area
        yield Button("Send", id="send-btn", variant="success").with_tooltip(
            "Send message (Ctrl+J)"
        )

    def on_mount(self) -> None:
        text_area = self.query_one("#chat-input", TextArea)
        text_area.focus()
        text_area.highlight_cursor_line = False

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "send-btn":
            self._submit()

    def on_key(self, event) -> None:
        """ctrl+j sends (terminals do not report ctrl+enter); up/down walk input history."""
        if event.key == "ctrl+j":
            self._submit()
            event.prevent_default()
            event.stop()
        elif event.key == "up" and self._is_cursor_at_start():
            self._navigate_history(-1)
            event.prevent_default()
            event.stop()
        elif event.key == "down" and self._is_cursor_at_end():
            self._navigate_history(1)
            event.prevent_default()
            event.stop()

    def _is_cursor_at_start(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        return text_area.cursor_location == (0, 0)

    def _is_cursor_at_end(self) -> bool:
        text_area = self.query_one("#chat-input", TextArea)
        lines = text_area.text.split("\n")
        return text_area.cursor_location == (len(lines) - 1, len(lines[-1]))

    def _navigate_history(self, direction: int) -> None:
        if not self._history:
            return
        text_area = self.query_one("#chat-input", TextArea)
        if direction < 0:
            if self._history_index == -1:
                self._history_index = len(self._history) - 1
            elif self._history_index > 0:
                self._history_index -= 1
        else:
            if self._history_index < len(self._history) - 1:
                self._history_index += 1
            else:
                self._history_index = -1
                text_area.text = ""
                return
        text_area.text = self._history[self._history_index]

    def _submit(self) -> None:
        if self._busy:
            return
        text_area = self.query_one("#chat-input", TextArea)
        value = text_area.text.strip()
        if value:
            if not self._history or self._history[-1] != value:
                self._history.append(value)
            self._history_index = -1
            text_area.text = ""
            self.post_message(self.Submitted(value))

    @property
    def busy(self) -> bool:
        return self._busy

    def set_busy(self, busy: bool) -> None:
        """Block or allow submissions while a reply is in flight."""
        self._busy = busy
        self.set_class(busy, "-busy")
        self.query_one("#send-btn", Button).disabled = busy

    def set_text(self, text: str) -> None:
        """Replace the input text (used for suggested questions)."""
        text_area = self.query_one("#chat-input", TextArea)
        text_area.text = text
        text_area.focus()

    def focus_input(self) -> None:
        """Focus the text input."""
        self.query_one("#chat-input", TextArea).focus()


class StatusBar(Static):
    """One-line status: conversation state, message count, token usage, store health."""

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._state = "idle"
        self._messages = 0
        self._input_tokens = 0
        self._output_tokens = 0
        self._store_failures = 0
        self._store_backend = ""

    def on_mount(self) -> None:
        self._update_display()

    def update_status(
        self,
        state: str | None = None,
        messages: int | None = None,
        input_tokens: int | None = None,
        output_tokens: int | None = None,
        store_failures: int | None = None,
        store_backend: str | None = None,
    ) -> None:
        """Update any subset of the status fields."""
        if state is not None:
            self._state = state
        if messages is not None:
            self._messages = messages
        if input_tokens is not None:
            self._input_tokens = input_tokens
        if output_tokens is not None:
            self._output_tokens = output_tokens
        if store_failures is not None:
            self._store_failures = store_failures
        if store_backend is not None:
            self._store_backend = store_backend
        self._update_display()

    def _update_display(self) -> None:
        label = STATE_LABELS.get(self._state, self._state)
        color = "green" if self._state == "idle" else "yellow"
        parts = [
            f"[bold {color}]{label}[/]",
            f"[bold cyan]Messages:[/] {self._messages}",
            f"[bold magenta]Tokens:[/] {self._input_tokens + self._output_tokens:,} "
            f"[dim]({self._input_tokens:,}/{self._output_tokens:,})[/]",
        ]
        if self._store_backend:
            parts.append(f"[bold blue]Store:[/] {self._store_backend}")
        if self._store_failures:
            parts.append(f"[bold red]Unsaved:[/] {self._store_failures}")
        self.update("  ".join(parts))

    def get_plain_text(self) -> str:
        return (
            f"State: {self._state}  Messages: {self._messages}  "
            f"Tokens: {self._input_tokens}/{self._output_tokens}  "
            f"Store failures: {self._store_failures}"
        )


class PersonaPanel(Static):
    """Persona card with suggested questions."""

    BORDER_TITLE = "Persona"

    def show_persona(self, persona: PersonaContext) -> None:
        lines = [f"[bold]{persona.name}[/]", f"[dim]{persona.tone}[/]", ""]
        if persona.expertise:
            lines.append("[bold cyan]Expertise[/]")
            lines.extend(f"  {item}" for item in persona.expertise)
            lines.append("")
        if persona.strengths:
            lines.append("[bold cyan]Strengths[/]")
            lines.extend(f"  {item}" for item in persona.strengths)
            lines.append("")
        if persona.example_responses:
            lines.append("[bold cyan]Try asking[/]")
            lines.extend(
                f"  [dim]{number}.[/] {question}"
                for number, question in enumerate(persona.example_responses, start=1)
            )
        self.update("\n".join(lines))


class DebugPanel(RichLog):
    """Timestamped diagnostics from the controller, client and store.

    Entries below the panel level are dropped. Hidden until `tui --log-level`
    or F4 shows it.
    """

    BORDER_TITLE = "Log"
    BORDER_SUBTITLE = "Diagnostics"

    def __init__(self, *args, log_level: int = LogLevel.DEBUG, **kwargs) -> None:
        super().__init__(
            *args,
            markup=True,
            highlight=False,
            auto_scroll=True,
            wrap=False,
            **kwargs
        )
        self._log_level = log_level

    @property
    def log_level(self) -> int:
        return self._log_level

    @log_level.setter
    def log_level(self, level: int) -> None:
        self._log_level = level
        self._update_subtitle()

    def _update_subtitle(self) -> None:
        if self.display:
            self.border_subtitle = f"Level: {LogLevel.name(self._log_level)}"
        else:
            self.border_subtitle = "Hidden"

    def on_mount(self) -> None:
        """Hide by default."""
        self.display = False

    def log(
        self,
        component: str,
        message: str,
        level: int = LogLevel.DEBUG
    ) -> None:
        """Write one entry unless it is below the panel level.

        Args:
            component: Component name (TUI, Chat, Stream, Store)
            message: Log message
            level: Log level (LogLevel.DEBUG, INFO, WARNING, ERROR)
        """
        if level < self._log_level:
            return

        timestamp = datetime.now().strftime(LOG_TIMESTAMP_FORMAT)
        level_colors = {
            LogLevel.DEBUG: "dim white",
            LogLevel.INFO: "cyan",
            LogLevel.WARNING: "yellow",
            LogLevel.ERROR: "red",
        }
        component_colors = {
            "TUI": "cyan",
            "Chat": "green",
            "Stream": "magenta",
            "Store": "bright_blue",
        }
        if len(message) > LOG_MAX_MESSAGE_LENGTH:
            message = message[:LOG_MAX_MESSAGE_LENGTH] + "..."

        level_color = level_colors.get(level, "white")
        comp_color = component_colors.get(component, "white")
        self.write(
            f"[dim]{timestamp}[/] "
            f"[{level_color}]{LogLevel.name(level):<5}[/] "
            f"[{comp_color}]\\[{component}][/] {message}"
        )

    def debug(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.DEBUG)

    def info(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.INFO)

    def warning(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.WARNING)

    def error(self, component: str, message: str) -> None:
        self.log(component, message, LogLevel.ERROR)

    def show(self) -> None:
        self.display = True
        self._update_subtitle()

    def hide(self) -> None:
        self.display = False
        self.border_subtitle = "Hidden"

    def toggle(self) -> bool:
        """Toggle visibility. Returns new state."""
        if self.display:
            self.hide()
            return False
        self.show()
        return True


class MessageView(Vertical):
    """One rendered chat message, updated in place as its content changes.

    Clicking selects the message as the feedback target.
    """

    class Selected(Message):
        """Posted when the message is clicked."""

        def __init__(self, message_id: str) -> None:
            super().__init__()
            self.message_id = message_id

    def __init__(self, message: ChatMessage, speaker: str, *args, **kwargs) -> None:
        role_class = "user-message" if message.role is Role.USER else "assistant-message"
        super().__init__(*args, classes=f"chat-message {role_class}", **kwargs)
        self._message = message
        self._speaker = speaker
        self._header = Static(self._header_text(), classes="message-header")
        self._content = Static(self._renderable(), classes="message-content")

    @property
    def message_id(self) -> str:
        return self._message.id

    @property
    def role(self) -> Role:
        return self._message.role

    @property
    def content(self) -> str:
        return self._message.content

    def compose(self):
        yield self._header
        yield self._content

    def _header_text(self) -> str:
        icon = ">" if self._message.role is Role.USER else "<"
        timestamp = self._message.timestamp.astimezone().strftime("%H:%M:%S")
        header = f"{icon} {self._speaker} [{timestamp}]"
        if self._message.feedback is not None:
            header += f"  {FEEDBACK_MARKERS[self._message.feedback.value]}"
        return header

    def _renderable(self):
        if self._message.role is Role.USER:
            return self._message.content
        # Empty placeholder while the reply is pending
        return Markdown(self._message.content or "...")

    def refresh_message(self, message: ChatMessage) -> None:
        """Re-render from the message's current content and feedback."""
        self._message = message
        self._header.update(self._header_text())
        self._content.update(self._renderable())
        feedback = message.feedback.value if message.feedback else None
        self.set_class(feedback == "like", "-liked")
        self.set_class(feedback == "dislike", "-disliked")

    def on_click(self, event: Click) -> None:
        event.stop()
        self.post_message(self.Selected(self._message.id))


class ChatHistoryWidget(VerticalScroll):
    """Scrollable chat history keyed by message id."""

    BORDER_TITLE = "Chat"
    BORDER_SUBTITLE = "Conversation history"
    ALLOW_MAXIMIZE = True

    def __init__(self, *args, persona_name: str = "Persona", **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._persona_name = persona_name
        self._views: dict[str, MessageView] = {}
        self._order: list[str] = []
        self._selected_id: str | None = None

    @property
    def message_count(self) -> int:
        return len(self._order)

    @property
    def selected_id(self) -> str | None:
        return self._selected_id

    def _speaker(self, message: ChatMessage) -> str:
        return "You" if message.role is Role.USER else self._persona_name

    def _update_subtitle(self) -> None:
        self.border_subtitle = f"{len(self._order)} messages"

    def add_message(self, message: ChatMessage) -> None:
        """Append a message to the history."""
        view = MessageView(message, self._speaker(message))
        self._views[message.id] = view
        self._order.append(message.id)
        self.mount(view)
        view.refresh_message(message)
        self._update_subtitle()
        self.scroll_end(animate=False)

    def update_message(self, message: ChatMessage) -> None:
        """Re-render an existing message; unknown ids are ignored."""
        view = self._views.get(message.id)
        if view is None:
            return
        view.refresh_message(message)
        if message.id == self._order[-1]:
            self.scroll_end(animate=False)

    def replace_messages(self, messages: list[ChatMessage]) -> None:
        """Replace the whole history."""
        self.clear_history()
        for message in messages:
            self.add_message(message)

    def select(self, message_id: str) -> None:
        """Mark a message as the feedback target."""
        self._selected_id = message_id if message_id in self._views else None

    def last_assistant_id(self) -> str | None:
        for message_id in reversed(self._order):
            if self._views[message_id].role is Role.ASSISTANT:
                return message_id
        return None

    def feedback_target(self) -> str | None:
        """The selected assistant message, or the last assistant message."""
        if self._selected_id is not None:
            view = self._views.get(self._selected_id)
            if view is not None and view.role is Role.ASSISTANT:
                return self._selected_id
        return self.last_assistant_id()

    def get_last_response(self) -> str | None:
        message_id = self.last_assistant_id()
        return self._views[message_id].content if message_id else None

    def clear_history(self) -> None:
        """Remove every rendered message."""
        self._views.clear()
        self._order.clear()
        self._selected_id = None
        self.remove_children()
        self.border_subtitle = "Conversation history"
