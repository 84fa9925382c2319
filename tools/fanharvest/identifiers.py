"""Turn user input (IDs or URLs) into validated :class:`Identifier` objects."""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable, Mapping

from .config import Platform, require_all_platforms
from .errors import InputError
from .models import Identifier

KEMONO_SERVICES = ("patreon", "fanbox", "gumroad", "subscribestar", "dlsite", "fantia", "boosty")

_FANBOX_ID = re.compile(r"^[\w-]+$")
_FANBOX_POST_ID = re.compile(r"^\d+$")
_FANBOX_CREATOR_URL = re.compile(
    r"^https?://(?:www\.fanbox\.cc/@(?P<at>[\w-]+)|(?P<sub>[\w-]+)\.fanbox\.cc)/?$"
)
_FANBOX_POST_URL = re.compile(
    r"^https?://(?:www\.fanbox\.cc/@(?P<at>[\w-]+)|(?P<sub>[\w-]+)\.fanbox\.cc)/posts/(?P<post_id>\d+)/?$"
)

_KEMONO_BASE = (
    r"^https?://(?:www\.)?kemono\.(?:party|su|cr)/"
    rf"(?P<service>{'|'.join(KEMONO_SERVICES)})/user/(?P<creator_id>[\w-]+)"
)
_KEMONO_CREATOR_URL = re.compile(_KEMONO_BASE + r"/?$")
_KEMONO_POST_URL = re.compile(_KEMONO_BASE + r"/post/(?P<post_id>\d+)/?$")


# ── pixiv fanbox ─────────────────────────────────────────────

def _fanbox_creator(raw: str) -> Identifier:
    match = _FANBOX_CREATOR_URL.match(raw)
    if match:
        creator_id = match.group("at") or match.group("sub")
    elif _FANBOX_ID.match(raw):
        creator_id = raw
    else:
        raise InputError(f"invalid Pixiv Fanbox creator ID or URL: {raw}")
    if creator_id == "www":
        raise InputError(f"invalid Pixiv Fanbox creator ID or URL: {raw}")
    return Identifier(Platform.PIXIV_FANBOX, "fanbox", creator_id)


def _fanbox_post(raw: str) -> Identifier:
    match = _FANBOX_POST_URL.match(raw)
    if match:
        creator_id = match.group("at") or match.group("sub")
        return Identifier(Platform.PIXIV_FANBOX, "fanbox", creator_id, match.group("post_id"))
    if _FANBOX_POST_ID.match(raw):
        # a bare post ID does not name its creator
        return Identifier(Platform.PIXIV_FANBOX, "fanbox", "", raw)
    raise InputError(f"invalid Pixiv Fanbox post ID or URL: {raw}")


# ── kemono ───────────────────────────────────────────────────

def _kemono_creator(raw: str) -> Identifier:
    match = _KEMONO_CREATOR_URL.match(raw)
    if not match:
        raise InputError(f"invalid creator URL found for Kemono: {raw}")
    return Identifier(Platform.KEMONO, match.group("service"), match.group("creator_id"))


def _kemono_post(raw: str) -> Identifier:
    match = _KEMONO_POST_URL.match(raw)
    if not match:
        raise InputError(f"invalid post URL found for Kemono: {raw}")
    return Identifier(
        Platform.KEMONO,
        match.group("service"),
        match.group("creator_id"),
        match.group("post_id"),
    )


_CREATOR_PARSERS: Mapping[Platform, Callable[[str], Identifier]] = require_all_platforms(
    {Platform.PIXIV_FANBOX: _fanbox_creator, Platform.KEMONO: _kemono_creator},
    "creator parsers",
)
_POST_PARSERS: Mapping[Platform, Callable[[str], Identifier]] = require_all_platforms(
    {Platform.PIXIV_FANBOX: _fanbox_post, Platform.KEMONO: _kemono_post},
    "post parsers",
)


def resolve_creator(platform: Platform, raw: str) -> Identifier:
    """Parse a creator ID or URL for ``platform``. Raises :class:`InputError`."""
    return _CREATOR_PARSERS[platform](raw.strip())


def resolve_post(platform: Platform, raw: str) -> Identifier:
    """Parse a post ID or URL for ``platform``. Raises :class:`InputError`."""
    return _POST_PARSERS[platform](raw.strip())


def dedupe_identifiers(identifiers: Iterable[Identifier]) -> list[Identifier]:
    """Drop repeated identifiers, keeping the first one seen."""
    seen: set[tuple[str, ...]] = set()
    unique: list[Identifier] = []
    for ident in identifiers:
        if ident.key in seen:
            continue
        seen.add(ident.key)
        unique.append(ident)
    return unique
