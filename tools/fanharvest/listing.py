"""Walk creators' paginated post listings."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import NamedTuple

from .api import PlatformClient
from .errors import FetchFailure
from .identifiers import dedupe_identifiers
from .models import ApiRequest, FetchError, Identifier, PageRange, Stage
from .pages import select_pages
from .pool import BoundedWorkerPool
from .progress import ErrorMarkingReporter, ProgressReporter
from .sites import Connector

logger = logging.getLogger("fanharvest.listing")


class ListingResult(NamedTuple):
    posts: list[Identifier]
    errors: list[FetchError]
    pages_fetched: int


class _PageTask(NamedTuple):
    creator: Identifier
    number: int
    request: ApiRequest


class PaginatedListFetcher:
    """Collect post identifiers for a batch of creators.

    Discovery requests run one creator at a time; every selected page of
    every creator is then fetched in a single pool run.
    """

    def __init__(self, connector: Connector, client: PlatformClient, pool: BoundedWorkerPool | None = None) -> None:
        self.connector = connector
        self.client = client
        self.pool = pool or BoundedWorkerPool(connector.site.max_concurrency)

    def plan(self, creator: Identifier, page_range: PageRange) -> list[_PageTask]:
        """Discover ``creator``'s pages and keep the ones inside ``page_range``.

        Raises :class:`FetchFailure` if the discovery request fails.
        """
        pages = self.connector.discover_pages(self.client, creator)
        selected = select_pages(len(pages), page_range)
        if page_range.max_page is not None and page_range.max_page > len(pages):
            logger.debug(
                "%s has %d page(s); ignoring pages beyond it in %s", creator, len(pages), page_range
            )
        return [_PageTask(creator, n, pages[n - 1]) for n in selected]

    def fetch(
        self,
        creators: Sequence[tuple[Identifier, PageRange]],
        progress: ProgressReporter | None = None,
    ) -> ListingResult:
        errors: list[FetchError] = []
        page_tasks: list[_PageTask] = []
        for creator, page_range in creators:
            try:
                page_tasks.extend(self.plan(creator, page_range))
            except FetchFailure as exc:
                logger.warning("Could not list pages for %s: %s", creator, exc)
                errors.append(FetchError(creator, exc, Stage.LIST))

        if errors and progress is not None:
            progress = ErrorMarkingReporter(progress)
            if not page_tasks:
                progress.on_start(0)
                progress.on_finish(True)

        calls: list[Callable[[], list[Identifier]]] = [
            self._page_call(task) for task in page_tasks
        ]
        results, failures = self.pool.run(calls, progress)

        for index, exc in failures:
            task = page_tasks[index]
            errors.append(FetchError(task.creator, exc, Stage.LIST, page=task.number))

        posts = dedupe_identifiers(ident for _, found in results for ident in found)
        logger.info(
            "Listed %d post(s) from %d/%d page(s) of %d creator(s)",
            len(posts), len(results), len(page_tasks), len(creators),
        )
        return ListingResult(posts, errors, len(results))

    def _page_call(self, task: _PageTask) -> Callable[[], list[Identifier]]:
        def call() -> list[Identifier]:
            return self.connector.fetch_page(self.client, task.creator, task.request)
        return call
