"""Progress reporting hooks used by the worker pool."""

from __future__ import annotations

from typing import Protocol

from rich.progress import Progress, TaskID


class ProgressReporter(Protocol):
    def on_start(self, total: int) -> None: ...

    def on_item_done(self) -> None: ...

    def on_finish(self, had_errors: bool) -> None: ...


class NullProgressReporter:
    """Reporter that ignores every signal."""

    def on_start(self, total: int) -> None:
        pass

    def on_item_done(self) -> None:
        pass

    def on_finish(self, had_errors: bool) -> None:
        pass


class RichProgressReporter:
    """Drive one task of a shared :class:`rich.progress.Progress` display.

    ``Progress.advance`` takes its own lock, so worker threads may call
    :meth:`on_item_done` directly.
    """

    def __init__(self, progress: Progress, description: str) -> None:
        self._progress = progress
        self._description = description
        self._task: TaskID | None = None

    def on_start(self, total: int) -> None:
        self._task = self._progress.add_task(self._description, total=total)

    def on_item_done(self) -> None:
        if self._task is not None:
            self._progress.advance(self._task)

    def on_finish(self, had_errors: bool) -> None:
        if self._task is None:
            return
        suffix = "[red](with errors)[/red]" if had_errors else "[green]done[/green]"
        self._progress.update(self._task, description=f"{self._description} {suffix}")


class ErrorMarkingReporter:
    """Forward to ``inner`` but always finish as failed.

    Used when errors happened before the pool run the reporter observes.
    """

    def __init__(self, inner: ProgressReporter) -> None:
        self._inner = inner

    def on_start(self, total: int) -> None:
        self._inner.on_start(total)

    def on_item_done(self) -> None:
        self._inner.on_item_done()

    def on_finish(self, had_errors: bool) -> None:
        self._inner.on_finish(True)
