"""Kemono connector."""

from __future__ import annotations

import math
from typing import Any

from ..api import PlatformClient
from ..config import Platform
from ..errors import JSONError
from ..extract import detect_password, external_targets, find_urls, parse_html
from ..models import ApiRequest, DownloadTarget, Identifier, PostDetails, TargetKind
from .base import Connector, expect


class KemonoConnector(Connector):
    platform = Platform.KEMONO

    def _creator_base(self, ident: Identifier) -> str:
        return f"{self.site.api_base}/{ident.service}/user/{ident.creator_id}"

    # ── listing ──────────────────────────────────────────────────

    def discover_pages(self, client: PlatformClient, creator: Identifier) -> list[ApiRequest]:
        profile = expect(client.get_json(f"{self._creator_base(creator)}/profile"), dict, "creator profile")
        post_count = expect(profile.get("post_count", 0), int, "creator post_count")
        page_size = self.site.page_size
        return [
            ApiRequest(f"{self._creator_base(creator)}/posts", {"o": str(page * page_size)})
            for page in range(math.ceil(post_count / page_size))
        ]

    def parse_page(self, creator: Identifier, payload: Any) -> list[Identifier]:
        posts = []
        for item in expect(payload, list, "creator posts page"):
            post_id = expect(item, dict, "post item").get("id")
            if post_id is None:
                continue
            posts.append(Identifier(self.platform, creator.service, creator.creator_id, str(post_id)))
        return posts

    # ── post details ─────────────────────────────────────────────

    def post_request(self, post: Identifier) -> ApiRequest:
        return ApiRequest(f"{self._creator_base(post)}/post/{post.post_id}")

    def parse_post(self, post: Identifier, payload: Any) -> PostDetails:
        if isinstance(payload, list):
            if not payload:
                raise JSONError(f"empty response for post {post}")
            payload = payload[0]
        data = expect(payload, dict, "post")
        data = expect(data.get("post", data), dict, "post")
        post_id = str(data.get("id") or post.post_id)
        details = PostDetails(identifier=post, title=expect(data.get("title") or "", str, "post title"))

        if self.options.attachments:
            entries = [data.get("file")] + list(expect(data.get("attachments") or [], list, "attachments"))
            for entry in entries:
                if not entry:
                    continue
                entry = expect(entry, dict, "attachment")
                path = expect(entry.get("path") or "", str, "attachment path")
                if not path:
                    continue
                name = expect(entry.get("name") or "", str, "attachment name")
                details.targets.append(
                    DownloadTarget(self._data_url(path), TargetKind.DIRECT, post_id, filename=name or None)
                )

        images, links, text = parse_html(expect(data.get("content") or "", str, "post content"))
        if self.options.images:
            for src in images:
                details.targets.append(DownloadTarget(self._data_url(src), TargetKind.DIRECT, post_id))

        urls = links + [url for url in find_urls(text) if url not in links]
        details.targets.extend(external_targets(urls, post_id, include_gdrive=self.options.gdrive))
        details.password_protected = detect_password(text)
        return details

    def _data_url(self, path: str) -> str:
        if path.startswith(("http://", "https://")):
            return path
        if path.startswith("/data/"):
            return self.site.origin + path
        return self.site.data_base + path
