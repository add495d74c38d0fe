"""Main CLI application using Typer."""
import asyncio
from pathlib import Path

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..chat import ConversationCallback, ConversationController
from ..memory import ChatMessage, Feedback, Role
from ..persona import build_system_instruction
from .providers import (
    conversation_key_for,
    get_generation_config,
    get_persona,
    get_store,
    get_streaming_client,
)

# Load environment variables
load_dotenv()

# Create Typer app
app = typer.Typer(
    name="personachat",
    help="Chat with an AI persona synthesized from a resume",
    no_args_is_help=True,
    add_completion=True,
)

# Console for rich output
console = Console()

PROFILE_ARGUMENT = typer.Argument(
    ...,
    exists=True,
    dir_okay=False,
    help="JSON bundle with 'resume' and 'persona' objects"
)
KEY_OPTION = typer.Option(
    None,
    "--key",
    "-k",
    help="Conversation key (default: the persona identifier)"
)
MEMORY_OPTION = typer.Option(
    None,
    "--memory",
    "-m",
    help="Message store: 'memory' (session-only) or 'sqlite' (persistent)"
)
DB_OPTION = typer.Option(
    None,
    "--db",
    help="Path for the SQLite message store"
)


class ConsoleCallback(ConversationCallback):
    """Renders the typewriter reveal and notices on a rich console."""

    def __init__(self, console: Console, verbose: bool = False) -> None:
        self._console = console
        self._verbose = verbose
        self._printed: dict[str, str] = {}

    def on_message_updated(self, message: ChatMessage) -> None:
        if message.role is not Role.ASSISTANT:
            return
        shown = self._printed.get(message.id, "")
        if message.content.startswith(shown):
            self._console.print(message.content[len(shown):], end="", markup=False, highlight=False)
        else:
            # Replaced content (failure substitution)
            self._console.print()
            self._console.print(message.content, style="red", markup=False, highlight=False)
        self._printed[message.id] = message.content

    def on_notice(self, text: str, severity: str = "information") -> None:
        if severity == "error":
            self._console.print(f"\n[red]{text}[/red]")
        elif self._verbose:
            self._console.print(f"[dim]{text}[/dim]")

    def debug(self, level: str, component: str, message: str) -> None:
        """Debug callback: warnings and errors always, the rest with --verbose."""
        if level in ("warning", "error"):
            color = "yellow" if level == "warning" else "red"
            self._console.print(f"[{color}][{component}] {message}[/{color}]")
        elif self._verbose:
            self._console.print(f"[dim][{component}] {message}[/dim]")


def _last_assistant(controller: ConversationController) -> ChatMessage | None:
    for message in reversed(controller.messages):
        if message.role is Role.ASSISTANT:
            return message
    return None


@app.command()
def chat(
    profile: Path = PROFILE_ARGUMENT,
    key: str | None = KEY_OPTION,
    memory: str | None = MEMORY_OPTION,
    db: Path | None = DB_OPTION,
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Show lifecycle and store diagnostics"
    ),
):
    """Interactive chat with the persona.

    Type '/like' or '/dislike' to rate the last reply, '/reset' to start over.
    """
    async def _chat():
        resume, persona = get_persona(profile, console)
        store = get_store(memory, db, console)
        client = get_streaming_client(console)
        callback = ConsoleCallback(console, verbose=verbose)
        controller = ConversationController(store, client, callback)
        controller.set_debug_callback(callback.debug)

        try:
            await controller.store.connect()
            conversation_key = conversation_key_for(persona, key)
            messages = await controller.initialize(conversation_key, persona, resume)

            console.print(f"[bold cyan]{persona.name}[/bold cyan] [dim]({conversation_key})[/dim]")
            console.print("[dim]Type 'exit', 'quit', or 'q' to leave; /like, /dislike, /reset[/dim]\n")

            for message in messages:
                label = "You" if message.role is Role.USER else persona.name
                color = "yellow" if message.role is Role.USER else "green"
                console.print(f"[bold {color}]{label}:[/bold {color}] ", end="")
                console.print(message.content, markup=False, highlight=False)

            if persona.example_responses:
                console.print("\n[dim]Try asking:[/dim]")
                for suggestion in persona.example_responses:
                    console.print(f"[dim]  - {suggestion}[/dim]")
            console.print()

            while True:
                try:
                    user_input = console.input("[bold yellow]You:[/bold yellow] ")
                except (KeyboardInterrupt, EOFError):
                    console.print("\n[dim]Goodbye![/dim]")
                    break

                command = user_input.strip().lower()
                if not command:
                    continue

                if command in ('exit', 'quit', 'q'):
                    console.print("[dim]Goodbye![/dim]")
                    break

                if command in ("/like", "/dislike"):
                    target = _last_assistant(controller)
                    if target is None:
                        continue
                    result = await controller.set_feedback(target.id, Feedback(command[1:]))
                    console.print(f"[dim]Feedback: {result.value if result else 'cleared'}[/dim]\n")
                    continue

                if command == "/reset":
                    if typer.confirm("Resetting clears this conversation for good. Continue?"):
                        welcome = await controller.reset()
                        console.print(f"[bold green]{persona.name}:[/bold green] ", end="")
                        console.print(welcome.content, markup=False, highlight=False)
                    console.print()
                    continue

                console.print(f"[bold green]{persona.name}:[/bold green] ", end="")
                await controller.send(user_input)
                console.print("\n")

        finally:
            await controller.close()
            await controller.store.disconnect()
            await client.close()

    asyncio.run(_chat())


@app.command(name="tui")
def tui_command(
    profile: Path = PROFILE_ARGUMENT,
    key: str | None = KEY_OPTION,
    memory: str | None = MEMORY_OPTION,
    db: Path | None = DB_OPTION,
    log_level: str | None = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Show log panel with level: debug (all), info, warning, or error"
    ),
):
    """Launch the interactive TUI chat interface."""
    async def _tui():
        from ..ui import run_textual_tui

        resume, persona = get_persona(profile, console)
        store = get_store(memory, db, console)
        client = get_streaming_client(console)

        try:
            await run_textual_tui(
                store=store,
                client=client,
                persona=persona,
                resume=resume,
                conversation_key=conversation_key_for(persona, key),
                log_level=log_level,
            )
        finally:
            try:
                await store.disconnect()
                await client.close()
            except Exception:
                pass
            console.print("\n[dim]Goodbye![/dim]")

    try:
        asyncio.run(_tui())
    except KeyboardInterrupt:
        pass


@app.command()
def history(
    key: str | None = typer.Argument(
        None,
        help="Conversation key (omit to list conversations)"
    ),
    memory: str | None = MEMORY_OPTION,
    db: Path | None = DB_OPTION,
):
    """Show a stored conversation, or list stored conversations."""
    async def _history():
        store = get_store(memory, db, console)

        try:
            await store.connect()

            if key is None:
                conversations = await store.list_conversations()
                if not conversations:
                    console.print("[yellow]No conversations stored[/yellow]")
                    return

                table = Table(show_header=True, header_style="bold cyan")
                table.add_column("Conversation", style="cyan")
                table.add_column("Messages", style="green", width=10)
                for conversation_key, count in conversations:
                    table.add_row(conversation_key, str(count))
                console.print(table)
                return

            messages = await store.load_history(key)
            if not messages:
                console.print(f"[yellow]No messages stored for '{key}'[/yellow]")
                return

            table = Table(show_header=True, header_style="bold cyan")
            table.add_column("Time", style="dim", width=8)
            table.add_column("Role", style="yellow", width=9)
            table.add_column("Content")
            table.add_column("Feedback", style="green", width=8)
            for message in messages:
                content = message.content
                if len(content) > 200:
                    content = content[:200] + "..."
                table.add_row(
                    message.timestamp.strftime("%H:%M:%S"),
                    message.role.value,
                    content,
                    message.feedback.value if message.feedback else "",
                )
            console.print(table)

        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            raise typer.Exit(code=1)
        finally:
            await store.disconnect()

    asyncio.run(_history())


@app.command()
def reset(
    profile: Path = PROFILE_ARGUMENT,
    key: str | None = KEY_OPTION,
    memory: str | None = MEMORY_OPTION,
    db: Path | None = DB_OPTION,
    yes: bool = typer.Option(
        False,
        "--yes",
        "-y",
        help="Skip confirmation prompt"
    ),
):
    """Clear a stored conversation and reseed it with a fresh welcome message."""
    async def _reset():
        resume, persona = get_persona(profile, console)
        conversation_key = conversation_key_for(persona, key)

        if not yes:
            console.print(f"[yellow]WARNING: This will delete the conversation '{conversation_key}'![/yellow]")
            confirm = typer.confirm("Are you sure you want to continue?")
            if not confirm:
                console.print("[dim]Aborted.[/dim]")
                return

        store = get_store(memory, db, console)
        client = get_streaming_client(console)
        callback = ConsoleCallback(console)
        controller = ConversationController(store, client, callback)
        controller.set_debug_callback(callback.debug)

        try:
            await controller.store.connect()
            await controller.initialize(conversation_key, persona, resume)
            await controller.reset()
            console.print(f"[green]Conversation '{conversation_key}' reset.[/green]")
        finally:
            await controller.store.disconnect()
            await client.close()

    asyncio.run(_reset())


@app.command()
def persona(
    profile: Path = PROFILE_ARGUMENT,
    prompt: bool = typer.Option(
        False,
        "--prompt",
        "-p",
        help="Also print the system instruction sent with every reply"
    ),
):
    """Show the persona synthesized from a profile."""
    resume, persona_context = get_persona(profile, console)

    table = Table(show_header=False, box=None)
    table.add_column("Field", style="bold cyan", width=12)
    table.add_column("Value")

    table.add_row("Name", persona_context.name)
    table.add_row("Title", resume.title or "-")
    table.add_row("Tone", persona_context.tone)
    table.add_row("Expertise", ", ".join(persona_context.expertise) or "-")
    table.add_row("Strengths", ", ".join(persona_context.strengths) or "-")
    table.add_row("Identifier", persona_context.identifier or "-")
    table.add_row("Positions", str(len(resume.experience)))

    console.print(table)
    if persona_context.description:
        console.print(Panel(persona_context.description, title="Description", border_style="dim"))

    if prompt:
        console.print(Panel(
            build_system_instruction(persona_context, resume),
            title="System instruction",
            border_style="cyan"
        ))


@app.command()
def health(
    memory: str | None = MEMORY_OPTION,
    db: Path | None = DB_OPTION,
):
    """Check the message store and the generation configuration."""
    async def _health():
        all_healthy = True

        store = get_store(memory, db, console)
        try:
            await store.connect()
            console.print(f"[green]+[/green] Message store ({store.backend_type}): OK")
        except Exception as e:
            console.print(f"[red]x[/red] Message store ({store.backend_type}): FAILED ({e})")
            all_healthy = False
        finally:
            await store.disconnect()

        config = get_generation_config(console)
        console.print(f"[green]+[/green] LLM provider: {config.provider} ({config.resolved_model})")
        if config.has_credential:
            console.print("[green]+[/green] API key: SET")
        else:
            console.print("[yellow]![/yellow] API key: NOT SET")

        if not all_healthy:
            raise typer.Exit(code=1)

    asyncio.run(_health())


def main():
    """Main entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
