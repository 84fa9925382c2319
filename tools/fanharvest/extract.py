"""Helpers for pulling links out of post bodies and classifying them."""

from __future__ import annotations

import re
from collections.abc import Iterable
from urllib.parse import urlsplit

from bs4 import BeautifulSoup

from .models import DownloadTarget, TargetKind

GDRIVE = "gdrive"

# host (or parent domain) → provider class
EXTERNAL_PROVIDERS: dict[str, str] = {
    "drive.google.com": GDRIVE,
    "docs.google.com": GDRIVE,
    "mega.nz": "mega",
    "mega.co.nz": "mega",
    "mediafire.com": "mediafire",
    "dropbox.com": "dropbox",
    "onedrive.live.com": "onedrive",
    "1drv.ms": "onedrive",
    "box.com": "box",
    "gigafile.nu": "gigafile",
    "axfc.net": "axfc",
    "getuploader.com": "getuploader",
}

PASSWORD_TEXTS = ("パス", "Pass", "pass", "密码")

# URLs end at the first character outside the RFC 3986 set, so CJK text glued to a link is left out.
_URL_RE = re.compile(r"https?://[A-Za-z0-9\-._~:/?#\[\]@!$&()*+,;=%]+")
_TRAILING = ".,;:!?)]}"


def find_urls(text: str) -> list[str]:
    """Return every http(s) URL in ``text``, in order, without trailing punctuation."""
    return [match.group(0).rstrip(_TRAILING) for match in _URL_RE.finditer(text or "")]


def classify_external(url: str) -> str | None:
    """Provider name for a known file-hosting URL, else None."""
    host = (urlsplit(url).hostname or "").lower()
    for domain, provider in EXTERNAL_PROVIDERS.items():
        if host == domain or host.endswith("." + domain):
            return provider
    return None


def detect_password(text: str) -> bool:
    return any(marker in (text or "") for marker in PASSWORD_TEXTS)


def external_targets(urls: Iterable[str], post_id: str, *, include_gdrive: bool = True) -> list[DownloadTarget]:
    targets = []
    for url in urls:
        provider = classify_external(url)
        if provider is None or (provider == GDRIVE and not include_gdrive):
            continue
        targets.append(DownloadTarget(url, TargetKind.EXTERNAL, post_id, provider=provider))
    return targets


def parse_html(content: str) -> tuple[list[str], list[str], str]:
    """Split an HTML post body into (image sources, link hrefs, plain text)."""
    if not content:
        return [], [], ""
    soup = BeautifulSoup(content, "html.parser")
    images = []
    for img in soup.select("img[src]"):
        src = str(img["src"])
        if src and not src.startswith("data:"):
            images.append(src)
    links = [str(a["href"]) for a in soup.select("a[href]")]
    return images, links, soup.get_text(" ")
