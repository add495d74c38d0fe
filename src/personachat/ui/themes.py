"""Theme definitions for the TUI.

This module hides the design decisions about:
- Color palette and visual appearance
- Theme variables (cursor, input selection)

To add a new theme, define it here and register in the app.
"""

from textual.theme import Theme

# Slate background with indigo accents
PERSONA_SLATE = Theme(
    name="persona-slate",
    primary="#6366f1",      # Indigo 500
    secondary="#818cf8",    # Indigo 400
    accent="#a5b4fc",       # Indigo 300
    foreground="#e2e8f0",   # Slate 200
    background="#020617",   # Slate 950
    success="#34d399",      # Emerald 400
    warning="#fbbf24",      # Amber 400
    error="#f87171",        # Red 400
    surface="#1e293b",      # Slate 800
    panel="#0f172a",        # Slate 900
    dark=True,
    variables={
        "block-cursor-foreground": "#020617",
        "block-cursor-background": "#a5b4fc",
        "block-cursor-text-style": "bold",
        "input-cursor-background": "#e2e8f0",
        "input-cursor-foreground": "#020617",
        "input-selection-background": "#6366f1 30%",
        "border": "#334155",  # Slate 700
        "footer-key-foreground": "#818cf8",
    },
)

THEME_NAME = PERSONA_SLATE.name
