# tests/test_harvester.py
from __future__ import annotations

import threading
import unittest

import httpx

from fanharvest.aggregate import RunState
from fanharvest.api import PlatformClient
from fanharvest.config import DownloadOptions, HarvesterConfig, Platform, RequestConfig, site_config
from fanharvest.errors import DevError, JSONError, ResponseError
from fanharvest.harvester import Harvester
from fanharvest.listing import PaginatedListFetcher
from fanharvest.models import Identifier, PageRange, Stage, TargetKind
from fanharvest.pages import parse_page_range
from fanharvest.sites import get_connector

API = "https://api.fanbox.cc"


class FakeFanbox:
    """In-memory Fanbox API: ``pages`` listing pages, two posts per page."""

    def __init__(
        self,
        pages: int = 7,
        failing_posts: tuple[str, ...] = (),
        failing_pages: tuple[int, ...] = (),
        garbled_posts: tuple[str, ...] = (),
    ) -> None:
        self.pages = pages
        self.failing_posts = set(failing_posts)
        self.garbled_posts = set(garbled_posts)
        self.failing_pages = set(failing_pages)
        self.lock = threading.Lock()
        self.pages_fetched: list[int] = []
        self.posts_fetched: list[str] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        params = request.url.params
        if path == "/post.paginateCreator":
            urls = [f"{API}/post.listCreator?creatorId={params['creatorId']}&page={n}" for n in range(1, self.pages + 1)]
            return httpx.Response(200, json={"body": urls})
        if path == "/post.listCreator":
            page = int(params["page"])
            with self.lock:
                self.pages_fetched.append(page)
            if page in self.failing_pages:
                return httpx.Response(502)
            return httpx.Response(200, json={"body": {"items": [{"id": f"{page}01"}, {"id": f"{page}02"}]}})
        if path == "/post.info":
            post_id = params["postId"]
            with self.lock:
                self.posts_fetched.append(post_id)
            if post_id in self.failing_posts:
                return httpx.Response(404)
            return httpx.Response(200, json={"body": {
                "id": post_id,
                "title": f"post {post_id}",
                "type": "file",
                "coverImageUrl": None,
                "body": {
                    "text": ["oops"] if post_id in self.garbled_posts else "",
                    "files": [{"url": f"https://downloads.fanbox.cc/files/{post_id}.zip", "name": post_id, "extension": "zip"}],
                },
            }})
        return httpx.Response(404)


def _harvester(platform: Platform, handler, **cookies: str) -> Harvester:
    cfg = HarvesterConfig(request=RequestConfig(timeout=5.0), download=DownloadOptions())
    return Harvester(platform, cfg, cookies, transport=httpx.MockTransport(handler))


def _creator(name: str = "abc") -> Identifier:
    return Identifier(Platform.PIXIV_FANBOX, "fanbox", name)


def _post(pid: str) -> Identifier:
    return Identifier(Platform.PIXIV_FANBOX, "fanbox", "", pid)


class TestFanboxHarvest(unittest.TestCase):
    def test_page_range_inside(self) -> None:
        fake = FakeFanbox(pages=7)
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run([_creator()], [parse_page_range("3-5")])
            self.assertIs(h.state, RunState.AGGREGATED)
        self.assertEqual(sorted(fake.pages_fetched), [3, 4, 5])
        self.assertEqual(sorted(fake.posts_fetched), ["301", "302", "401", "402", "501", "502"])
        self.assertEqual(len(result.direct_targets), 6)
        self.assertEqual(result.errors, ())

    def test_page_range_past_last_page(self) -> None:
        fake = FakeFanbox(pages=7)
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run([_creator()], [parse_page_range("10-20")])
        self.assertEqual(fake.pages_fetched, [])
        self.assertEqual(fake.posts_fetched, [])
        self.assertEqual(result.errors, ())
        self.assertEqual(result.direct_targets, ())

    def test_failed_posts_are_recorded(self) -> None:
        fake = FakeFanbox(failing_posts=("2", "4"))
        posts = [_post(str(i)) for i in range(1, 6)]
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run(posts=posts)
        self.assertEqual(len(result.errors), 2)
        self.assertTrue(all(e.stage is Stage.DETAIL for e in result.errors))
        self.assertEqual([e.identifier.post_id for e in result.errors], ["2", "4"])
        self.assertIsInstance(result.errors[0].cause, ResponseError)
        self.assertEqual(
            [t.origin_post_id for t in result.direct_targets],
            ["1", "3", "5"],
        )

    def test_failed_page_keeps_siblings(self) -> None:
        fake = FakeFanbox(pages=3, failing_pages=(2,))
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run([_creator()], [PageRange()])
        self.assertEqual(len(result.errors), 1)
        self.assertEqual((result.errors[0].stage, result.errors[0].page), (Stage.LIST, 2))
        self.assertEqual(
            [t.origin_post_id for t in result.direct_targets],
            ["101", "102", "301", "302"],
        )

    def test_direct_and_discovered_post_fetched_once(self) -> None:
        fake = FakeFanbox(pages=1)
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run([_creator(), _creator()], [PageRange(), PageRange()], posts=[_post("101")])
        self.assertEqual(sorted(fake.posts_fetched), ["101", "102"])
        self.assertEqual(fake.pages_fetched, [1])
        self.assertEqual(len(result.direct_targets), 2)
        self.assertEqual(h.stats["creators"], 1)

    def test_wrong_typed_post_field_is_recorded(self) -> None:
        fake = FakeFanbox(garbled_posts=("2",))
        posts = [_post(str(i)) for i in range(1, 4)]
        with _harvester(Platform.PIXIV_FANBOX, fake) as h:
            result = h.run(posts=posts)
            self.assertIs(h.state, RunState.AGGREGATED)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual((result.errors[0].stage, result.errors[0].identifier.post_id), (Stage.DETAIL, "2"))
        self.assertIsInstance(result.errors[0].cause, JSONError)
        self.assertEqual([t.origin_post_id for t in result.direct_targets], ["1", "3"])

    def test_all_failures_still_return_result(self) -> None:
        with _harvester(Platform.PIXIV_FANBOX, lambda request: httpx.Response(500)) as h:
            result = h.run([_creator("a"), _creator("b")], [PageRange(), PageRange()], posts=[_post("1")])
        self.assertEqual(result.direct_targets, ())
        self.assertEqual([e.stage for e in result.errors], [Stage.LIST, Stage.LIST, Stage.DETAIL])

    def test_mismatched_lengths_is_dev_error(self) -> None:
        with _harvester(Platform.PIXIV_FANBOX, FakeFanbox()) as h:
            with self.assertRaises(DevError):
                h.run([_creator()], [])

    def test_wrong_platform_is_dev_error(self) -> None:
        with _harvester(Platform.PIXIV_FANBOX, FakeFanbox()) as h:
            with self.assertRaises(DevError):
                h.run(posts=[Identifier(Platform.KEMONO, "patreon", "1", "2")])


class RecordingReporter:
    def __init__(self) -> None:
        self.events: list[tuple] = []
        self.lock = threading.Lock()

    def on_start(self, total: int) -> None:
        self.events.append(("start", total))

    def on_item_done(self) -> None:
        with self.lock:
            self.events.append(("done",))

    def on_finish(self, had_errors: bool) -> None:
        self.events.append(("finish", had_errors))


class TestListingProgress(unittest.TestCase):
    def _fetch(self, creators: list[str]) -> tuple[RecordingReporter, list]:
        fake = FakeFanbox(pages=2)

        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.params.get("creatorId") == "broken":
                return httpx.Response(500)
            return fake(request)

        reporter = RecordingReporter()
        client = PlatformClient(site_config(Platform.PIXIV_FANBOX), transport=httpx.MockTransport(handler))
        with client:
            fetcher = PaginatedListFetcher(get_connector(Platform.PIXIV_FANBOX), client)
            result = fetcher.fetch([(_creator(name), PageRange()) for name in creators], reporter)
        return reporter, result.errors

    def test_discovery_failure_marks_page_progress_failed(self) -> None:
        reporter, errors = self._fetch(["good", "broken"])
        self.assertEqual(len(errors), 1)
        self.assertEqual(reporter.events[0], ("start", 2))
        self.assertEqual(reporter.events.count(("done",)), 2)
        self.assertEqual(reporter.events[-1], ("finish", True))

    def test_only_discovery_failures_still_report(self) -> None:
        reporter, errors = self._fetch(["broken"])
        self.assertEqual(len(errors), 1)
        self.assertEqual(reporter.events, [("start", 0), ("finish", True)])

    def test_clean_listing_finishes_ok(self) -> None:
        reporter, errors = self._fetch(["good"])
        self.assertEqual(errors, [])
        self.assertEqual(reporter.events[-1], ("finish", False))


class TestKemonoHarvest(unittest.TestCase):
    def test_creator_listing_and_details(self) -> None:
        offsets = []
        lock = threading.Lock()

        def handler(request: httpx.Request) -> httpx.Response:
            path = request.url.path
            if path == "/api/v1/patreon/user/42/profile":
                return httpx.Response(200, json={"id": "42", "post_count": 120})
            if path == "/api/v1/patreon/user/42/posts":
                offset = int(request.url.params["o"])
                with lock:
                    offsets.append(offset)
                return httpx.Response(200, json=[{"id": str(offset + 1)}])
            if path.startswith("/api/v1/patreon/user/42/post/"):
                pid = path.rsplit("/", 1)[1]
                return httpx.Response(200, json={"post": {
                    "id": pid,
                    "file": {"name": f"{pid}.png", "path": f"/aa/{pid}.png"},
                    "attachments": [],
                    "content": '<a href="https://drive.google.com/file/d/1">drive</a>' if pid == "51" else "",
                }})
            return httpx.Response(404)

        creator = Identifier(Platform.KEMONO, "patreon", "42")
        with _harvester(Platform.KEMONO, handler, session="cookie") as h:
            result = h.run([creator], [parse_page_range("2-9")])

        self.assertEqual(sorted(offsets), [50, 100])
        self.assertEqual(
            [t.url for t in result.direct_targets],
            ["https://kemono.cr/data/aa/51.png", "https://kemono.cr/data/aa/101.png"],
        )
        self.assertEqual([t.url for t in result.gdrive_targets], ["https://drive.google.com/file/d/1"])
        self.assertTrue(all(t.kind is TargetKind.EXTERNAL for t in result.external_targets))
        self.assertEqual(h.stats["pages"], 2)

    def test_wrong_typed_file_path_is_recorded(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            pid = request.url.path.rsplit("/", 1)[1]
            path = 123 if pid == "1" else f"/aa/{pid}.png"
            return httpx.Response(200, json={"post": {"id": pid, "file": {"path": path}, "content": ""}})

        posts = [Identifier(Platform.KEMONO, "patreon", "42", str(i)) for i in range(1, 4)]
        with _harvester(Platform.KEMONO, handler, session="cookie") as h:
            result = h.run(posts=posts)
            self.assertIs(h.state, RunState.AGGREGATED)
        self.assertEqual(len(result.errors), 1)
        self.assertIs(result.errors[0].stage, Stage.DETAIL)
        self.assertIsInstance(result.errors[0].cause, JSONError)
        self.assertEqual(
            [t.url for t in result.direct_targets],
            ["https://kemono.cr/data/aa/2.png", "https://kemono.cr/data/aa/3.png"],
        )


if __name__ == "__main__":
    unittest.main()
