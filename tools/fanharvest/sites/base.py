"""Interface every site connector implements."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from ..api import PlatformClient
from ..config import DownloadOptions, Platform, SiteConfig
from ..errors import JSONError
from ..models import ApiRequest, Identifier, PostDetails


def expect(value: Any, kind: type | tuple[type, ...], what: str) -> Any:
    """Return ``value`` if it has the expected JSON type, else raise JSONError."""
    if not isinstance(value, kind):
        raise JSONError(f"unexpected JSON for {what}: got {type(value).__name__}")
    return value


class Connector(ABC):
    """Site-specific request building and response parsing.

    The generic fetchers own concurrency and error capture; a connector only
    knows URLs and JSON shapes. Parsing methods raise :class:`JSONError` on a
    schema mismatch.
    """

    platform: Platform

    def __init__(self, site: SiteConfig, options: DownloadOptions | None = None) -> None:
        self.site = site
        self.options = options or DownloadOptions()

    @abstractmethod
    def discover_pages(self, client: PlatformClient, creator: Identifier) -> list[ApiRequest]:
        """Return one request per listing page, page 1 first."""

    @abstractmethod
    def parse_page(self, creator: Identifier, payload: Any) -> list[Identifier]:
        """Extract the post identifiers from one listing page."""

    @abstractmethod
    def post_request(self, post: Identifier) -> ApiRequest:
        """Build the metadata request for one post."""

    @abstractmethod
    def parse_post(self, post: Identifier, payload: Any) -> PostDetails:
        """Extract the download targets from a post's metadata."""

    def fetch_page(self, client: PlatformClient, creator: Identifier, page: ApiRequest) -> list[Identifier]:
        payload = client.get_json(page.url, page.params)
        try:
            return self.parse_page(creator, payload)
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise JSONError(f"malformed listing page for {creator} at {page.url}: {exc!r}") from exc

    def fetch_post(self, client: PlatformClient, post: Identifier) -> PostDetails:
        request = self.post_request(post)
        payload = client.get_json(request.url, request.params)
        try:
            return self.parse_post(post, payload)
        except (KeyError, TypeError, AttributeError, ValueError) as exc:
            raise JSONError(f"malformed post data for {post}: {exc!r}") from exc
