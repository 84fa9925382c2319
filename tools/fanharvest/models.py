"""Value types passed between the pipeline stages."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .config import Platform
from .errors import FetchFailure, InputError


@dataclass(frozen=True)
class Identifier:
    """A creator (``post_id is None``) or a single post on one platform."""

    platform: Platform
    service: str
    creator_id: str
    post_id: str | None = None

    @property
    def is_post(self) -> bool:
        return self.post_id is not None

    @property
    def key(self) -> tuple[str, ...]:
        """Uniqueness key used for deduplication."""
        if self.post_id is None:
            return (self.platform.value, self.service, self.creator_id)
        if self.platform.post_ids_are_global:
            return (self.platform.value, self.post_id)
        return (self.platform.value, self.service, self.creator_id, self.post_id)

    @property
    def sort_key(self) -> tuple[str, str, str, str]:
        return (self.platform.value, self.service, self.creator_id, self.post_id or "")

    def __str__(self) -> str:
        base = f"{self.platform.value}:{self.service}/{self.creator_id or '?'}"
        return f"{base}/{self.post_id}" if self.post_id else base


@dataclass(frozen=True)
class PageRange:
    min_page: int = 1
    max_page: int | None = None

    def __post_init__(self) -> None:
        if self.min_page < 1:
            raise InputError(f"page numbers start at 1, got {self.min_page}")
        if self.max_page is not None and self.max_page < self.min_page:
            raise InputError(f"page range {self.min_page}-{self.max_page} is reversed")

    @property
    def bounded(self) -> bool:
        return self.max_page is not None

    def __str__(self) -> str:
        if self.max_page is None:
            return f"{self.min_page}-"
        if self.max_page == self.min_page:
            return str(self.min_page)
        return f"{self.min_page}-{self.max_page}"


@dataclass(frozen=True)
class ApiRequest:
    url: str
    params: dict[str, str] = field(default_factory=dict)


class TargetKind(str, Enum):
    DIRECT = "direct"
    EXTERNAL = "external"


@dataclass(frozen=True)
class DownloadTarget:
    url: str
    kind: TargetKind
    origin_post_id: str
    provider: str | None = None
    filename: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"url": self.url, "post_id": self.origin_post_id}
        if self.provider:
            data["provider"] = self.provider
        if self.filename:
            data["filename"] = self.filename
        return data


@dataclass
class PostDetails:
    """What one post contributes to the run."""
    identifier: Identifier
    title: str = ""
    targets: list[DownloadTarget] = field(default_factory=list)
    password_protected: bool = False


class Stage(str, Enum):
    LIST = "list"
    DETAIL = "detail"


@dataclass(frozen=True)
class FetchError:
    identifier: Identifier
    cause: FetchFailure
    stage: Stage
    page: int | None = None

    @property
    def sort_key(self) -> tuple[int, tuple[str, str, str, str], int]:
        stage_order = 0 if self.stage is Stage.LIST else 1
        return (stage_order, self.identifier.sort_key, self.page or 0)

    def to_dict(self) -> dict[str, Any]:
        return {
            "identifier": str(self.identifier),
            "stage": self.stage.value,
            "page": self.page,
            "error": type(self.cause).__name__,
            "message": str(self.cause),
        }


@dataclass(frozen=True)
class RunResult:
    direct_targets: tuple[DownloadTarget, ...] = ()
    external_targets: tuple[DownloadTarget, ...] = ()
    errors: tuple[FetchError, ...] = ()
    password_protected: tuple[Identifier, ...] = ()

    def external_by_provider(self) -> dict[str, list[DownloadTarget]]:
        grouped: dict[str, list[DownloadTarget]] = {}
        for target in self.external_targets:
            grouped.setdefault(target.provider or "other", []).append(target)
        return grouped

    @property
    def gdrive_targets(self) -> list[DownloadTarget]:
        return self.external_by_provider().get("gdrive", [])

    def to_dict(self) -> dict[str, Any]:
        return {
            "direct": [t.to_dict() for t in self.direct_targets],
            "external": {
                provider: [t.to_dict() for t in targets]
                for provider, targets in self.external_by_provider().items()
            },
            "password_protected": [str(i) for i in self.password_protected],
            "errors": [e.to_dict() for e in self.errors],
        }
