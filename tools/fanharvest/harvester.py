"""Core harvesting logic – orchestrates listing → details → aggregation."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping, Sequence

import httpx

from .aggregate import ResultAggregator, RunState, RunStateMachine
from .api import PlatformClient
from .config import HarvesterConfig, Platform, site_config
from .details import PostDetailFetcher
from .errors import DevError
from .identifiers import dedupe_identifiers
from .listing import PaginatedListFetcher
from .models import Identifier, PageRange, RunResult
from .progress import NullProgressReporter, ProgressReporter
from .sites import get_connector

logger = logging.getLogger("fanharvest.core")

ProgressFactory = Callable[[str], ProgressReporter]


def _null_progress(description: str) -> ProgressReporter:
    return NullProgressReporter()


class Harvester:
    """Runs the full pipeline for one platform.

    ``cookies`` maps cookie names to already-validated session values.
    """

    def __init__(
        self,
        platform: Platform,
        cfg: HarvesterConfig | None = None,
        cookies: Mapping[str, str] | None = None,
        *,
        progress_factory: ProgressFactory | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self.platform = platform
        self.cfg = cfg or HarvesterConfig()
        self.site = site_config(platform)
        self.client = PlatformClient(self.site, self.cfg.request, cookies, transport=transport)
        self.connector = get_connector(platform, self.cfg.download)
        self.lister = PaginatedListFetcher(self.connector, self.client)
        self.detailer = PostDetailFetcher(self.connector, self.client)
        self.progress_factory = progress_factory or _null_progress
        self.state: RunState | None = None
        # Stats
        self.stats = {"creators": 0, "pages": 0, "posts": 0, "direct": 0, "external": 0, "errors": 0}

    # ── run ──────────────────────────────────────────────────────

    def run(
        self,
        creators: Sequence[Identifier] = (),
        page_ranges: Sequence[PageRange] = (),
        posts: Sequence[Identifier] = (),
    ) -> RunResult:
        """Harvest ``creators`` (paired with ``page_ranges``) and ``posts``.

        Per-item failures end up in ``RunResult.errors``. Only a broken
        caller contract (:class:`DevError`) aborts the run.
        """
        if len(creators) != len(page_ranges):
            raise DevError(
                f"{len(creators)} creator(s) but {len(page_ranges)} page range(s); lengths must match"
            )
        for ident in [*creators, *posts]:
            if ident.platform is not self.platform:
                raise DevError(f"{ident} does not belong to {self.site.title}")

        machine = RunStateMachine()
        self.state = machine.state
        aggregator = ResultAggregator()

        # first page range wins for a repeated creator
        seen: set[tuple[str, ...]] = set()
        creator_pairs = []
        for creator, page_range in zip(creators, page_ranges):
            if creator.key in seen:
                continue
            seen.add(creator.key)
            creator_pairs.append((creator, page_range))

        self._advance(machine, RunState.LISTS_FETCHING)
        listing = self.lister.fetch(
            creator_pairs, self.progress_factory(f"Listing {self.site.title} creator pages")
        )
        aggregator.add_errors(listing.errors)
        self._advance(machine, RunState.LISTS_DONE)

        all_posts = dedupe_identifiers([*posts, *listing.posts])
        self._advance(machine, RunState.DETAILS_FETCHING)
        detail = self.detailer.fetch(
            all_posts, self.progress_factory(f"Getting {self.site.title} post details")
        )
        aggregator.add_details(detail.details)
        aggregator.add_errors(detail.errors)
        self._advance(machine, RunState.DETAILS_DONE)

        result = aggregator.finalize()
        self._advance(machine, RunState.AGGREGATED)

        self.stats["creators"] += len(creator_pairs)
        self.stats["pages"] += listing.pages_fetched
        self.stats["posts"] += len(detail.details)
        self.stats["direct"] += len(result.direct_targets)
        self.stats["external"] += len(result.external_targets)
        self.stats["errors"] += len(result.errors)
        logger.info(
            "%s harvest complete: %d/%d posts, %d error(s)",
            self.site.title, len(detail.details), len(all_posts), len(result.errors),
        )
        return result

    def _advance(self, machine: RunStateMachine, target: RunState) -> None:
        machine.advance(target)
        self.state = machine.state

    # ── lifecycle ────────────────────────────────────────────────

    def close(self) -> None:
        self.client.close()

    def __enter__(self) -> Harvester:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()
