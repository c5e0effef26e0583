#!/usr/bin/env python3

import logging

from rich.console import Console as RichConsole
from rich.logging import RichHandler


class Console:
    """Stderr console wrapper; stdout is reserved for the JSON document."""

    def __init__(self):
        self._rich = RichConsole(stderr=True)

    def print(self, *args, **kwargs):
        """Print using Rich console."""
        return self._rich.print(*args, **kwargs)

    def setup_logging(self, verbose: bool = False) -> None:
        """Route library logging through Rich on stderr."""
        logging.basicConfig(
            level=logging.DEBUG if verbose else logging.WARNING,
            format="%(message)s",
            handlers=[RichHandler(console=self._rich, show_path=False)],
            force=True,
        )

    def report_failures(self, failures) -> None:
        for failure in failures:
            self.print(f"[red]Error processing {failure.file_path}[/red]")
            for message in failure.messages:
                self.print(f"  {message}", markup=False, highlight=False)
