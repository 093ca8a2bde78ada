"""Pod API data models and aspect targeting helpers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from typing import Any

PUBLIC_ASPECT = "public"

AspectTarget = str | int | Iterable[str | int] | None


@dataclass(frozen=True, slots=True)
class DiasporaPost:
    """A status message as created on the pod."""

    id: int
    public: bool
    guid: str
    text: str
    permalink: str

    @classmethod
    def from_response(cls, data: dict[str, Any], permalink: str) -> DiasporaPost:
        """Build from a ``status_messages`` JSON record. Raises KeyError/TypeError on bad shape."""
        return cls(
            id=data["id"],
            public=bool(data.get("public", False)),
            guid=str(data["guid"]),
            text=data.get("text") or "",
            permalink=permalink,
        )


def normalize_aspect_ids(aspects: AspectTarget) -> list[str]:
    """Turn a post target into the ``aspect_ids`` list sent to the pod.

    Strings are split on commas, other iterables are taken element-wise.
    Blank entries are dropped. Nothing left, or any ``public`` entry, means
    a public post.
    """
    if aspects is None:
        raw: list[str] = []
    elif isinstance(aspects, str):
        raw = aspects.split(",")
    elif isinstance(aspects, int):
        raw = [str(aspects)]
    else:
        raw = [str(a) for a in aspects]

    ids: list[str] = []
    for item in raw:
        item = item.strip()
        if item and item not in ids:
            ids.append(item)

    if not ids or PUBLIC_ASPECT in ids:
        return [PUBLIC_ASPECT]
    return ids


def is_public_target(aspect_ids: list[str]) -> bool:
    return aspect_ids == [PUBLIC_ASPECT]
