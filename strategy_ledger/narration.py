"""
narration.py - Injectable output sink for the narrated walkthroughs.

The accounting core never writes to the console itself. StrategyAccount and
the scenario runner take a `sink` callable (default: print) and only emit text
through it, so tests can capture or silence the narrative.
"""

from __future__ import annotations
from typing import Callable, List

Sink = Callable[[str], None]

WIDTH = 60


def null_sink(message: str) -> None:
    """Discard output."""
    return None


class CollectingSink:
    """Sink that stores every emitted line, for assertions in tests."""

    def __init__(self):
        self.lines: List[str] = []

    def __call__(self, message: str) -> None:
        self.lines.extend(message.split("\n"))

    @property
    def text(self) -> str:
        return "\n".join(self.lines)

    def contains(self, fragment: str) -> bool:
        return any(fragment in line for line in self.lines)


class Narrator:
    """Formatting helpers for step-by-step console walkthroughs."""

    def __init__(self, sink: Sink = print):
        self.sink = sink

    def line(self, text: str = "") -> None:
        self.sink(text)

    def banner(self, title: str, width: int = WIDTH) -> None:
        self.sink("=" * width)
        self.sink(title.center(width).rstrip())
        self.sink("=" * width)

    def step(self, title: str, *details: str) -> None:
        self.sink(f"\n>> {title}")
        for detail in details:
            self.sink(f"   {detail}")

    def section(self, text: str) -> None:
        self.sink(f"\n--- {text} ---")

    def divider(self, width: int = 50) -> None:
        self.sink("\n" + "-" * width)

    def code(self, lines: List[str]) -> None:
        for text in lines:
            self.sink(f"   {text}")
