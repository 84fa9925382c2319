"""Site connectors, one per :class:`~fanharvest.config.Platform`."""

from __future__ import annotations

from collections.abc import Mapping

from ..config import DownloadOptions, Platform, require_all_platforms, site_config
from .base import Connector
from .fanbox import FanboxConnector
from .kemono import KemonoConnector

CONNECTORS: Mapping[Platform, type[Connector]] = require_all_platforms(
    {
        Platform.PIXIV_FANBOX: FanboxConnector,
        Platform.KEMONO: KemonoConnector,
    },
    "CONNECTORS",
)


def get_connector(platform: Platform, options: DownloadOptions | None = None) -> Connector:
    return CONNECTORS[platform](site_config(platform), options)


__all__ = ["CONNECTORS", "Connector", "FanboxConnector", "KemonoConnector", "get_connector"]
