# tests/test_cli.py
from __future__ import annotations

import functools
import json
import tempfile
import unittest
from pathlib import Path
from unittest import mock

import httpx
from click.testing import CliRunner

from fanharvest.cli import cli
from fanharvest.harvester import Harvester


def _fanbox_api(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/post.info":
        post_id = request.url.params["postId"]
        if post_id == "2":
            return httpx.Response(404)
        return httpx.Response(200, json={"body": {
            "id": post_id,
            "type": "image",
            "body": {"text": "", "images": [{"originalUrl": f"https://downloads.fanbox.cc/images/{post_id}.png"}]},
        }})
    return httpx.Response(404)


class TestCli(unittest.TestCase):
    def setUp(self) -> None:
        self.runner = CliRunner()

    def test_invalid_page_spec_is_usage_error(self) -> None:
        result = self.runner.invoke(cli, ["fanbox", "--creator", "abc", "--page", "0-5"])
        self.assertEqual(result.exit_code, 2)

    def test_page_count_must_match_creators(self) -> None:
        result = self.runner.invoke(cli, ["fanbox", "--creator", "a", "--creator", "b", "--page", "1"])
        self.assertEqual(result.exit_code, 2)

    def test_nothing_to_do(self) -> None:
        result = self.runner.invoke(cli, ["fanbox"])
        self.assertEqual(result.exit_code, 2)

    def test_kemono_requires_session(self) -> None:
        result = self.runner.invoke(
            cli, ["kemono", "--creator", "https://kemono.su/patreon/user/1"], env={"KEMONO_SESSION": ""}
        )
        self.assertEqual(result.exit_code, 2)

    def test_cookie_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            cookie_file = Path(tmp) / "cookies.txt"
            cookie_file.write_text(
                "# Netscape HTTP Cookie File\n"
                ".fanbox.cc\tTRUE\t/\tTRUE\t0\tFANBOXSESSID\tsecret\n",
                encoding="utf-8",
            )
            out_path = Path(tmp) / "out.json"
            seen = []

            def handler(request: httpx.Request) -> httpx.Response:
                seen.append(request.headers.get("cookie", ""))
                return _fanbox_api(request)

            fake = functools.partial(Harvester, transport=httpx.MockTransport(handler))
            with mock.patch("fanharvest.cli.Harvester", fake):
                result = self.runner.invoke(
                    cli,
                    ["fanbox", "--post", "1", "--cookie-file", str(cookie_file), "-o", str(out_path)],
                )
            self.assertEqual(result.exit_code, 0, result.output)
            self.assertIn("FANBOXSESSID=secret", seen[0])

    def test_writes_json_result(self) -> None:
        fake = functools.partial(Harvester, transport=httpx.MockTransport(_fanbox_api))
        with tempfile.TemporaryDirectory() as tmp:
            out_path = Path(tmp) / "out.json"
            with mock.patch("fanharvest.cli.Harvester", fake):
                result = self.runner.invoke(
                    cli, ["fanbox", "--post", "1", "--post", "2", "--post", "1", "-o", str(out_path)]
                )
            self.assertEqual(result.exit_code, 0, result.output)
            data = json.loads(out_path.read_text(encoding="utf-8"))

        self.assertEqual(data["direct"], [{"url": "https://downloads.fanbox.cc/images/1.png", "post_id": "1"}])
        self.assertEqual(len(data["errors"]), 1)
        self.assertEqual(data["errors"][0]["stage"], "detail")


if __name__ == "__main__":
    unittest.main()
