"""Terminal UI module for personachat.

Provides a Textual-based TUI for chatting with a persona.

Module structure (Parnas principle - each module hides a design decision):
- widgets.py: Custom widgets (chat history, input bar, status line, log panel)
- styles.py: CSS styling (layout decisions)
- themes.py: Color palette and theme configuration
- screens.py: Modal dialogs (reset confirmation)
- callbacks.py: Controller integration (how TUI receives updates)
- app.py: Application orchestration (user interaction flow)
"""

from .app import PersonaChatApp, run_textual_tui
from .callbacks import TUICallback
from .config import LogLevel
from .screens import ConfirmationScreen
from .widgets import ChatHistoryWidget, ChatInputBar, DebugPanel, PersonaPanel, StatusBar

__all__ = [
    "ChatHistoryWidget",
    "ChatInputBar",
    "ConfirmationScreen",
    "DebugPanel",
    "LogLevel",
    "PersonaChatApp",
    "PersonaPanel",
    "StatusBar",
    "TUICallback",
    "run_textual_tui",
]
