"""Fetch post metadata and turn it into download targets."""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from typing import NamedTuple

from .api import PlatformClient
from .errors import DevError
from .models import FetchError, Identifier, PostDetails, Stage
from .pool import BoundedWorkerPool
from .progress import ProgressReporter
from .sites import Connector

logger = logging.getLogger("fanharvest.details")


class DetailResult(NamedTuple):
    details: list[PostDetails]
    errors: list[FetchError]


class PostDetailFetcher:
    def __init__(self, connector: Connector, client: PlatformClient, pool: BoundedWorkerPool | None = None) -> None:
        self.connector = connector
        self.client = client
        self.pool = pool or BoundedWorkerPool(connector.site.max_concurrency)

    def fetch(self, posts: Sequence[Identifier], progress: ProgressReporter | None = None) -> DetailResult:
        """Fetch every post once. ``posts`` must already be deduplicated.

        ``details`` follows the order of ``posts`` with failed posts left out.
        """
        if len({post.key for post in posts}) != len(posts):
            raise DevError("post identifiers must be deduplicated before fetching details")
        if any(not post.is_post for post in posts):
            raise DevError("detail fetching needs post identifiers, got a creator")

        calls: list[Callable[[], PostDetails]] = [self._post_call(post) for post in posts]
        results, failures = self.pool.run(calls, progress)

        errors = [FetchError(posts[index], exc, Stage.DETAIL) for index, exc in failures]
        details = [value for _, value in results]
        logger.info("Fetched details for %d/%d post(s)", len(details), len(posts))
        return DetailResult(details, errors)

    def _post_call(self, post: Identifier) -> Callable[[], PostDetails]:
        def call() -> PostDetails:
            return self.connector.fetch_post(self.client, post)
        return call
