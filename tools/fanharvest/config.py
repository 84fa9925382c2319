"""Configuration and per-platform settings for the harvester."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import TypeVar

from .errors import DevError

V = TypeVar("V")


class Platform(str, Enum):
    """Supported content platforms."""

    PIXIV_FANBOX = "fanbox"
    KEMONO = "kemono"

    @property
    def post_ids_are_global(self) -> bool:
        """True when a post ID alone identifies a post on this platform."""
        return self is Platform.PIXIV_FANBOX


def require_all_platforms(table: Mapping[Platform, V], name: str) -> Mapping[Platform, V]:
    """Fail loudly if a per-platform table does not cover every platform."""
    missing = [p.value for p in Platform if p not in table]
    if missing:
        raise DevError(f"{name} has no entry for platform(s): {', '.join(missing)}")
    return table


@dataclass(frozen=True)
class SiteConfig:
    platform: Platform
    title: str
    api_base: str
    origin: str
    cookie_name: str
    cookie_domain: str
    max_concurrency: int
    page_size: int = 0
    data_base: str = ""
    # Kemono rejects API requests that advertise a JSON Accept header.
    accept: str = "application/json, text/plain, */*"


SITES: Mapping[Platform, SiteConfig] = MappingProxyType(
    require_all_platforms(
        {
            Platform.PIXIV_FANBOX: SiteConfig(
                platform=Platform.PIXIV_FANBOX,
                title="Pixiv Fanbox",
                api_base="https://api.fanbox.cc",
                origin="https://www.fanbox.cc",
                cookie_name="FANBOXSESSID",
                cookie_domain=".fanbox.cc",
                max_concurrency=5,
            ),
            Platform.KEMONO: SiteConfig(
                platform=Platform.KEMONO,
                title="Kemono",
                api_base="https://kemono.cr/api/v1",
                origin="https://kemono.cr",
                cookie_name="session",
                cookie_domain=".kemono.cr",
                max_concurrency=3,
                page_size=50,
                data_base="https://kemono.cr/data",
                accept="text/css",
            ),
        },
        "SITES",
    )
)


def site_config(platform: Platform) -> SiteConfig:
    return SITES[platform]


@dataclass(frozen=True)
class RequestConfig:
    """HTTP settings shared by every platform client."""
    user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    )
    timeout: float = 30.0  # per-call deadline, seconds
    request_delay: float = 0.0  # minimum seconds between request starts

    @classmethod
    def from_env(cls) -> RequestConfig:
        defaults = cls()
        return cls(
            user_agent=os.getenv("FANHARVEST_USER_AGENT", defaults.user_agent),
            timeout=float(os.getenv("FANHARVEST_TIMEOUT", str(defaults.timeout))),
            request_delay=float(os.getenv("FANHARVEST_REQUEST_DELAY", str(defaults.request_delay))),
        )


@dataclass(frozen=True)
class DownloadOptions:
    """Which kinds of resources a post contributes to the result."""
    images: bool = True
    attachments: bool = True
    thumbnails: bool = True
    gdrive: bool = True


@dataclass
class HarvesterConfig:
    request: RequestConfig = field(default_factory=RequestConfig.from_env)
    download: DownloadOptions = field(default_factory=DownloadOptions)
