"""Pixiv Fanbox connector."""

from __future__ import annotations

import logging
from typing import Any

from ..api import PlatformClient
from ..config import Platform
from ..extract import detect_password, external_targets, find_urls
from ..models import ApiRequest, DownloadTarget, Identifier, PostDetails, TargetKind
from .base import Connector, expect

logger = logging.getLogger("fanharvest.sites.fanbox")


class FanboxConnector(Connector):
    platform = Platform.PIXIV_FANBOX

    # ── listing ──────────────────────────────────────────────────

    def discover_pages(self, client: PlatformClient, creator: Identifier) -> list[ApiRequest]:
        payload = client.get_json(
            f"{self.site.api_base}/post.paginateCreator",
            {"creatorId": creator.creator_id},
        )
        body = expect(expect(payload, dict, "paginateCreator").get("body"), list, "paginateCreator body")
        return [ApiRequest(str(url)) for url in body]

    def parse_page(self, creator: Identifier, payload: Any) -> list[Identifier]:
        body = expect(payload, dict, "creator posts page").get("body")
        items = body.get("items") if isinstance(body, dict) else body
        posts = []
        for item in expect(items, list, "creator posts page items"):
            post_id = expect(item, dict, "post item").get("id")
            if post_id is None:
                continue
            posts.append(Identifier(self.platform, "fanbox", creator.creator_id, str(post_id)))
        return posts

    # ── post details ─────────────────────────────────────────────

    def post_request(self, post: Identifier) -> ApiRequest:
        return ApiRequest(f"{self.site.api_base}/post.info", {"postId": post.post_id or ""})

    def parse_post(self, post: Identifier, payload: Any) -> PostDetails:
        info = expect(expect(payload, dict, "post.info").get("body"), dict, "post.info body")
        post_id = str(info.get("id") or post.post_id)
        details = PostDetails(identifier=post, title=expect(info.get("title") or "", str, "post title"))

        cover = expect(info.get("coverImageUrl") or "", str, "coverImageUrl")
        if cover and self.options.thumbnails:
            details.targets.append(DownloadTarget(cover, TargetKind.DIRECT, post_id))

        post_body = info.get("body")
        if post_body is None:
            logger.debug("Post %s is restricted; only the cover is visible", post_id)
            return details
        expect(post_body, dict, "post.info body.body")

        post_type = info.get("type")
        text = expect(post_body.get("text") or "", str, "post text")
        if post_type == "image":
            if self.options.images:
                details.targets.extend(self._images(post_body.get("images"), post_id))
        elif post_type == "file":
            if self.options.attachments:
                details.targets.extend(self._files(post_body.get("files"), post_id))
        elif post_type == "article":
            text = self._article_text(post_body.get("blocks"))
            if self.options.images:
                details.targets.extend(self._images(_map_values(post_body.get("imageMap")), post_id))
            if self.options.attachments:
                details.targets.extend(self._files(_map_values(post_body.get("fileMap")), post_id))
        elif post_type != "text":
            logger.debug("Post %s has unhandled type %r", post_id, post_type)

        details.targets.extend(
            external_targets(find_urls(text), post_id, include_gdrive=self.options.gdrive)
        )
        details.password_protected = detect_password(text)
        return details

    # ── helpers ──────────────────────────────────────────────────

    @staticmethod
    def _images(images: Any, post_id: str) -> list[DownloadTarget]:
        targets = []
        for image in expect(images or [], list, "images"):
            url = expect(expect(image, dict, "image").get("originalUrl") or "", str, "image originalUrl")
            if url:
                targets.append(DownloadTarget(url, TargetKind.DIRECT, post_id))
        return targets

    @staticmethod
    def _files(files: Any, post_id: str) -> list[DownloadTarget]:
        targets = []
        for file_info in expect(files or [], list, "files"):
            url = expect(expect(file_info, dict, "file").get("url") or "", str, "file url")
            if not url:
                continue
            name = file_info.get("name")
            ext = file_info.get("extension")
            filename = f"{name}.{ext}" if name and ext else None
            targets.append(DownloadTarget(url, TargetKind.DIRECT, post_id, filename=filename))
        return targets

    @staticmethod
    def _article_text(blocks: Any) -> str:
        parts = []
        for block in expect(blocks or [], list, "blocks"):
            block = expect(block, dict, "block")
            if block.get("text"):
                parts.append(expect(block["text"], str, "block text"))
            for link in expect(block.get("links") or [], list, "block links"):
                url = expect(link, dict, "block link").get("url")
                if url:
                    parts.append(expect(url, str, "block link url"))
        return "\n".join(parts)


def _map_values(mapping: Any) -> list[Any]:
    return list(expect(mapping or {}, dict, "article map").values())
