# src/meshup/lib/prompts.py
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm, Prompt

from meshup.lib.domain import RetryChoice


class ConsolePrompter:
    """Operator questions asked on the terminal"""

    def __init__(self, console: Optional[Console] = None) -> None:
        self.console = console or Console()

    def confirm(self, question: str, default: bool = True) -> bool:
        return Confirm.ask(f"[yellow]\\[QUESTION][/yellow] {question}", default=default, console=self.console)

    def choose_retry(self) -> RetryChoice:
        """Accept any answer starting with r, l or q, in either case"""
        valid = {choice.value: choice for choice in RetryChoice}
        while True:
            answer = Prompt.ask(
                "[yellow]\\[QUESTION][/yellow] Retry QR code (r), switch to link (l), or quit (q)? \\[R/l/q]",
                default=RetryChoice.RETRY_QR.value,
                show_default=False,
                console=self.console,
            )
            key = answer.strip()[:1].lower()
            if key in valid:
                return valid[key]
            self.console.print("[red]Please answer r, l or q.[/red]")
