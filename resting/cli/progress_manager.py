"""
Manages a Rich progress bar for a single download driven by fraction callbacks.
"""

import asyncio
import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

log = logging.getLogger("resting")


class ProgressManager:
    """
    Shows one download task. Fractions arrive through ``update``; when the
    server never reports a size the bar stays indeterminate.
    """

    def __init__(self, console: Console, description: str):
        self.console = console
        self.description = self._shorten(description)
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            TimeElapsedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._task_id: TaskID | None = None
        self.last_fraction: float | None = None

    @staticmethod
    def _shorten(description: str) -> str:
        if len(description) > 55:
            return description[:25] + "…" + description[-27:]
        return description

    def update(self, fraction: float) -> None:
        """Progress callback: records the completed fraction of the download."""
        self.last_fraction = fraction
        if self._task_id is None:
            return
        if self.progress.tasks[self._task_id].total is None:
            self.progress.update(self._task_id, total=1.0)
        self.progress.update(self._task_id, completed=min(fraction, 1.0))

    def finish(self, success: bool = True) -> None:
        if self._task_id is None:
            return
        if success:
            self.progress.update(self._task_id, total=1.0, completed=1.0)
        self.progress.stop_task(self._task_id)

    async def __aenter__(self):
        self._task_id = self.progress.add_task(self.description, total=None, start=True)
        self.progress.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        self.finish(success=exc_type is None)
        await asyncio.sleep(0.1)
        self.progress.stop()
