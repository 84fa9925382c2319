"""Merge per-post results into one deduplicated :class:`RunResult`."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from enum import Enum

from .errors import DevError
from .models import DownloadTarget, FetchError, Identifier, PostDetails, RunResult, TargetKind

logger = logging.getLogger("fanharvest.aggregate")


class RunState(str, Enum):
    CREATED = "created"
    LISTS_FETCHING = "lists_fetching"
    LISTS_DONE = "lists_done"
    DETAILS_FETCHING = "details_fetching"
    DETAILS_DONE = "details_done"
    AGGREGATED = "aggregated"


_ORDER = list(RunState)


class RunStateMachine:
    """Forward-only run lifecycle; each state is entered exactly once."""

    def __init__(self) -> None:
        self.state = RunState.CREATED

    def advance(self, target: RunState) -> None:
        position = _ORDER.index(self.state)
        if position + 1 >= len(_ORDER) or _ORDER[position + 1] is not target:
            raise DevError(f"illegal run transition {self.state.value} -> {target.value}")
        self.state = target


def dedupe_targets(targets: Iterable[DownloadTarget]) -> list[DownloadTarget]:
    """Keep the first target for each URL, preserving order."""
    seen: set[str] = set()
    unique = []
    for target in targets:
        if target.url in seen:
            continue
        seen.add(target.url)
        unique.append(target)
    return unique


class ResultAggregator:
    """Collects details and errors; builds the result once everything is in."""

    def __init__(self) -> None:
        self._details: list[PostDetails] = []
        self._errors: list[FetchError] = []

    def add_details(self, details: Iterable[PostDetails]) -> None:
        self._details.extend(details)

    def add_errors(self, errors: Iterable[FetchError]) -> None:
        self._errors.extend(errors)

    def finalize(self) -> RunResult:
        # a URL keeps the kind it was first discovered with
        targets = dedupe_targets(t for details in self._details for t in details.targets)
        direct = tuple(t for t in targets if t.kind is TargetKind.DIRECT)
        external = tuple(t for t in targets if t.kind is TargetKind.EXTERNAL)
        protected: list[Identifier] = [d.identifier for d in self._details if d.password_protected]
        errors = tuple(sorted(self._errors, key=lambda e: e.sort_key))
        logger.info(
            "Aggregated %d direct and %d external target(s), %d error(s)",
            len(direct), len(external), len(errors),
        )
        return RunResult(
            direct_targets=direct,
            external_targets=external,
            errors=errors,
            password_protected=tuple(protected),
        )
