"""Per-render registries for stylesheet links, toolbar nodes and notices."""

from __future__ import annotations

import base64
import binascii
import json
from dataclasses import asdict, dataclass, field
from typing import Literal

from themestyles.constants import STYLE_MEDIA
from themestyles.utils.urls import add_query_args


@dataclass(frozen=True)
class StyleAsset:
    handle: str
    src: str
    deps: tuple[str, ...] = ()
    version: str | int | None = None
    media: str = STYLE_MEDIA

    @property
    def href(self) -> str:
        if self.version is None:
            return self.src
        return add_query_args(self.src, {"ver": str(self.version)})


class StyleRegistry:
    """Stylesheets to link from the page head, in registration order.

    Registering a handle a second time is a no-op, so hooks may run more than
    once per render.
    """

    def __init__(self) -> None:
        self._assets: dict[str, StyleAsset] = {}

    def enqueue(
        self,
        handle: str,
        src: str,
        deps: list[str] | tuple[str, ...] = (),
        version: str | int | None = None,
        media: str = STYLE_MEDIA,
    ) -> StyleAsset:
        if handle not in self._assets:
            self._assets[handle] = StyleAsset(
                handle=handle,
                src=src,
                deps=tuple(deps),
                version=version,
                media=media,
            )
        return self._assets[handle]

    def get(self, handle: str) -> StyleAsset | None:
        return self._assets.get(handle)

    @property
    def assets(self) -> list[StyleAsset]:
        return list(self._assets.values())

    def __len__(self) -> int:
        return len(self._assets)


@dataclass(frozen=True)
class ToolbarNode:
    id: str
    title: str
    href: str


@dataclass
class AdminBar:
    nodes: dict[str, ToolbarNode] = field(default_factory=dict)

    def add_node(self, node: ToolbarNode) -> None:
        self.nodes[node.id] = node

    def get_node(self, node_id: str) -> ToolbarNode | None:
        return self.nodes.get(node_id)


@dataclass(frozen=True)
class Notice:
    kind: Literal["success", "error"]
    message: str

    def to_cookie(self) -> str:
        """Encode for a flash cookie that survives the post-compile redirect."""
        payload = json.dumps(asdict(self), separators=(",", ":")).encode("utf-8")
        return base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")

    @classmethod
    def from_cookie(cls, value: str | None) -> Notice | None:
        if not value:
            return None
        try:
            data = json.loads(base64.urlsafe_b64decode(value + "==="))
            kind, message = data["kind"], data["message"]
        except (binascii.Error, UnicodeError, ValueError, KeyError, TypeError):
            return None
        if kind not in ("success", "error") or not isinstance(message, str):
            return None
        return cls(kind=kind, message=message)
