"""
API variants understood by the Help Scout client.

Two generations of the Mailbox API responses are in circulation and
they disagree on two points: whether an expired token should be
refreshed transparently, and where a paged response keeps its items
and its page count.

``items``
    Paged responses look like ``{"items": [...], "pages": 3}`` and a
    ``401`` triggers a single token refresh followed by a retry.

``embedded``
    HAL style responses look like
    ``{"_embedded": {"conversations": [...]}, "page": {"totalPages": 3}}``
    and a ``401`` is raised to the caller immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple, Union


@dataclass(frozen=True)
class ApiVariant:
    name: str
    refresh_on_unauthorized: bool
    items_field: Optional[str]
    total_pages_path: Tuple[str, ...]

    @property
    def uses_embedded(self) -> bool:
        return self.items_field is None

    def check_embedded_key(self, embedded_key: Optional[str]) -> None:
        """Raise ``ValueError`` if this variant needs an ``embedded_key`` and got none."""
        if self.uses_embedded and not embedded_key:
            raise ValueError(
                "embedded_key must be provided for the %r API variant" % self.name
            )

    def extract_items(self, payload: Mapping[str, Any], embedded_key: Optional[str] = None) -> list:
        """Return the items of one page.

        For the embedded variant ``embedded_key`` names the collection
        under ``_embedded`` and is required.
        """
        if self.uses_embedded:
            self.check_embedded_key(embedded_key)
            embedded = payload.get("_embedded") or {}
            return list(embedded.get(embedded_key) or [])
        return list(payload.get(self.items_field) or [])

    def total_pages(self, payload: Mapping[str, Any]) -> int:
        """Return the total page count reported by a page, ``0`` if absent."""
        value: Any = payload
        for key in self.total_pages_path:
            if not isinstance(value, Mapping):
                return 0
            value = value.get(key)
        try:
            return int(value or 0)
        except (TypeError, ValueError):
            return 0


ITEMS_VARIANT = ApiVariant(
    name="items",
    refresh_on_unauthorized=True,
    items_field="items",
    total_pages_path=("pages",),
)

EMBEDDED_VARIANT = ApiVariant(
    name="embedded",
    refresh_on_unauthorized=False,
    items_field=None,
    total_pages_path=("page", "totalPages"),
)

_VARIANTS = {v.name: v for v in (ITEMS_VARIANT, EMBEDDED_VARIANT)}


def get_variant(variant: Union[str, ApiVariant]) -> ApiVariant:
    """Resolve a variant object from its name (case-insensitive)."""
    if isinstance(variant, ApiVariant):
        return variant
    try:
        return _VARIANTS[str(variant).lower()]
    except KeyError:
        raise ValueError(
            "variant must be one of %s, got %r" % (sorted(_VARIANTS), variant)
        ) from None
