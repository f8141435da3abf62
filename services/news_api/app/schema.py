from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional, Sequence

from pydantic import BaseModel, Field

from shared.utils.dates import end_of_day, is_date_only, parse_timestamp


class InvalidFilterError(ValueError):
    """A recognised filter carried a value that cannot be interpreted."""


class ArticleFilters(BaseModel):
    """Filters accepted by the article listing. All optional, AND-ed together."""

    search: Optional[str] = None
    provider: Optional[str] = None
    source: Optional[str] = None
    categories: List[str] = Field(default_factory=list)
    published_from: Optional[datetime] = None
    published_to: Optional[datetime] = None

    @classmethod
    def from_query(cls, params: Mapping[str, Sequence[str]]) -> "ArticleFilters":
        """Build filters from multi-valued query parameters.

        Unknown keys are ignored. ``categories`` may repeat or use the
        ``categories[]`` form; each value is one exact category name, commas
        included. A date-only ``to`` covers that whole day.
        """
        def first(key: str) -> Optional[str]:
            values = [v for v in params.get(key, []) if v is not None and v.strip()]
            return values[0] if values else None

        categories: List[str] = []
        for key in ("categories", "categories[]"):
            for value in params.get(key, []):
                if value.strip() and value.strip() not in categories:
                    categories.append(value.strip())

        published_from = _parse_bound("from", first("from"))
        published_to = _parse_bound("to", first("to"))
        if published_to is not None and is_date_only(first("to")):
            published_to = end_of_day(published_to)

        return cls(
            search=first("search"),
            provider=first("provider"),
            source=first("source"),
            categories=categories,
            published_from=published_from,
            published_to=published_to,
        )

    def cache_params(self) -> Dict[str, Any]:
        return {
            "search": self.search,
            "provider": self.provider,
            "source": self.source,
            "categories": self.categories,
            "from": self.published_from.isoformat() if self.published_from else None,
            "to": self.published_to.isoformat() if self.published_to else None,
        }


class PreferenceOverrides(BaseModel):
    """Single-dimension overrides for the preference feed (exact names)."""

    source: Optional[str] = None
    category: Optional[str] = None
    author: Optional[str] = None

    @property
    def supplied(self) -> bool:
        return any((self.source, self.category, self.author))


def _parse_bound(name: str, raw: Optional[str]) -> Optional[datetime]:
    if raw is None:
        return None
    parsed = parse_timestamp(raw)
    if parsed is None:
        raise InvalidFilterError(f"Invalid date for '{name}': {raw}")
    return parsed
