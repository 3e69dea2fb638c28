#!/usr/bin/env python3
"""Interactive chat CLI for the hybrid assistant."""

import asyncio
import sys
from dataclasses import replace

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.text import Text

from nexus.config import Settings
from nexus.errors import NexusError
from nexus.models.turn import Attachment, Turn, TurnRole
from nexus.services.orchestrator import HybridOrchestrator, create_orchestrator
from nexus.utils.logging import setup_logging

ROLE_STYLES = {
    TurnRole.USER: ("You", "cyan"),
    TurnRole.ASSISTANT: ("Assistant", "green"),
    TurnRole.SYSTEM: ("System", "red"),
    TurnRole.TOOL_REQUEST: ("Tool request", "magenta"),
    TurnRole.TOOL_RESPONSE: ("Tool response", "yellow"),
}


class ChatCLI:
    """Terminal front end that renders the conversation log by role."""

    def __init__(self, orchestrator: HybridOrchestrator):
        """Initialize chat CLI."""
        self.orchestrator = orchestrator
        self.console = Console()
        self.pending_attachment: Attachment | None = None

    async def start(self) -> None:
        """Run the interactive chat loop."""
        self.console.print(
            Panel.fit(
                "[bold blue]Nexus Hybrid Assistant[/bold blue]\n"
                "Type your messages to chat with the assistant.\n"
                "Commands: /attach <path>, /help, /clear, /quit",
                border_style="blue",
            )
        )
        self._display_turn(self.orchestrator.start())

        try:
            while True:
                user_input = await asyncio.to_thread(Prompt.ask, "\n[bold cyan]You[/bold cyan]")
                command = user_input.strip()

                if command.lower() in ["/quit", "/exit"]:
                    break
                elif command.lower() == "/help":
                    self._show_help()
                    continue
                elif command.lower() == "/clear":
                    self.pending_attachment = None
                    self._display_turn(self.orchestrator.clear())
                    continue
                elif command.lower().startswith("/attach"):
                    self._queue_attachment(command[len("/attach") :].strip())
                    continue

                await self._send_message(user_input)

        except (KeyboardInterrupt, EOFError):
            pass
        finally:
            self.console.print("\n[yellow]Goodbye![/yellow]")

    async def _send_message(self, message: str) -> None:
        attachment, self.pending_attachment = self.pending_attachment, None
        try:
            with self.console.status("[dim]Processing...[/dim]"):
                turns = await self.orchestrator.submit(message, attachment)
        except NexusError as e:
            self.console.print(f"[red]{e}[/red]")
            return

        # The user's own turn is already on screen
        for turn in turns[1:]:
            self._display_turn(turn)

    def _queue_attachment(self, path: str) -> None:
        if not path:
            self.console.print("[red]Usage: /attach <path>[/red]")
            return
        try:
            self.pending_attachment = Attachment.from_path(path)
        except OSError as e:
            self.console.print(f"[red]Cannot read {path}: {e}[/red]")
            return
        self.console.print(
            f"[dim]Queued {self.pending_attachment.name} ({self.pending_attachment.mime_type})[/dim]"
        )

    def _display_turn(self, turn: Turn) -> None:
        title, color = ROLE_STYLES[turn.role]
        if turn.metadata and turn.metadata.processing_time is not None:
            title = f"{title} ({turn.metadata.processing_time:.1f}s)"

        body = Markdown(turn.content) if turn.role is TurnRole.ASSISTANT else Text(turn.content)
        self.console.print(Panel(body, title=f"[bold {color}]{title}[/bold {color}]", border_style=color))

    def _show_help(self) -> None:
        help_text = """
[bold]Available Commands:[/bold]
• /attach <path> - Send a file with your next message
• /help - Show this help message
• /clear - Clear the workspace and start a new session
• /quit or /exit - Exit the chat

[bold]Tips:[/bold]
• Ask about the weather, React or the time to see the external data tool at work
• Include "error" or "fail" in a message to watch the fallback path
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    setup_logging()
    settings = Settings.from_env()
    if len(sys.argv) > 1:
        settings = replace(settings, tool_mode=sys.argv[1])

    chat = ChatCLI(create_orchestrator(settings))
    asyncio.run(chat.start())


if __name__ == "__main__":
    main()
