from __future__ import annotations

from dataclasses import dataclass
from urllib.parse import parse_qs, urlsplit

from storefront.schemas.analytics import UTM_FIELDS, UtmParams


@dataclass(frozen=True)
class NavigationContext:
    """What the browser knows about one page load."""

    url: str
    referrer: str | None = None

    @property
    def page(self) -> str:
        path = urlsplit(self.url).path
        return path or "/"


def extract_utm_params(url: str) -> UtmParams:
    """Pull the campaign parameters out of ``url``; blank values are dropped."""

    query = parse_qs(urlsplit(url).query, keep_blank_values=False)
    values: dict[str, str] = {}
    for field in UTM_FIELDS:
        candidates = [value.strip() for value in query.get(field, []) if value.strip()]
        if candidates:
            values[field] = candidates[0]
    return UtmParams(**values)


def normalize_referrer(referrer: str | None) -> str | None:
    if referrer is None:
        return None
    cleaned = referrer.strip()
    return cleaned or None
