"""Operator interaction for interactive workflows.

Workflows report progress and ask questions through an Interaction so they
can run against a terminal or against scripted answers in tests.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable

import typer
from rich.console import Console
from rich.markup import escape


class Interaction(ABC):
    """Status output and questions for the operator."""

    @abstractmethod
    def status(self, message: str) -> None:
        """Report a progress line."""

    @abstractmethod
    def warn(self, message: str) -> None:
        """Report a problem that does not stop the workflow."""

    @abstractmethod
    def confirm(self, question: str, default: bool = True) -> bool:
        """Ask a yes/no question."""

    @abstractmethod
    def ask(self, question: str, default: str = "") -> str:
        """Ask for free text; an empty answer yields the default."""


class TerminalInteraction(Interaction):
    """Interaction on the controlling terminal."""

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    def status(self, message: str) -> None:
        self.console.print(message, markup=False, highlight=False, soft_wrap=True)

    def warn(self, message: str) -> None:
        self.console.print(
            f"[yellow]{escape(message)}[/yellow]", highlight=False, soft_wrap=True
        )

    def confirm(self, question: str, default: bool = True) -> bool:
        return typer.confirm(question, default=default)

    def ask(self, question: str, default: str = "") -> str:
        answer = typer.prompt(question, default="", show_default=False)
        return answer.strip() or default


class ScriptedInteraction(Interaction):
    """Interaction answering from pre-recorded replies.

    When the scripted answers run out, questions are answered with their
    defaults. Every message and question is recorded for assertions.
    """

    def __init__(
        self,
        confirm_answers: Iterable[bool] = (),
        ask_answers: Iterable[str] = (),
    ) -> None:
        self._confirm_answers = list(confirm_answers)
        self._ask_answers = list(ask_answers)
        self.messages: list[str] = []
        self.warnings: list[str] = []
        self.questions: list[str] = []

    def status(self, message: str) -> None:
        self.messages.append(message)

    def warn(self, message: str) -> None:
        self.warnings.append(message)

    def confirm(self, question: str, default: bool = True) -> bool:
        self.questions.append(question)
        if self._confirm_answers:
            return self._confirm_answers.pop(0)
        return default

    def ask(self, question: str, default: str = "") -> str:
        self.questions.append(question)
        if self._ask_answers:
            return self._ask_answers.pop(0).strip() or default
        return default


__all__ = ["Interaction", "ScriptedInteraction", "TerminalInteraction"]
