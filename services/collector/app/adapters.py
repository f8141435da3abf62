"""Provider adapters.

Each adapter knows one upstream: how to fetch its batch and how to map one
raw record onto :class:`NormalizedArticle`. Records missing a required field
are rejected (``normalize`` returns ``None``); any fetch failure abandons the
whole batch with :class:`ProviderFetchError`.
"""

from datetime import datetime
from typing import Any, List, Mapping, Optional

import feedparser
import httpx
from pydantic import ValidationError

from shared.app_logging.logger import get_logger
from shared.config.settings import ProviderSettings, get_settings
from shared.schemas.articles import NormalizedArticle
from shared.utils.dates import parse_timestamp
from shared.utils.retry import RetryError, async_retry

logger = get_logger("collector.adapters")


class ProviderFetchError(Exception):
    """The provider's batch could not be fetched or decoded."""


def _present(record: Mapping[str, Any], *path: str) -> Optional[Any]:
    """Value at ``path`` if it exists and is neither None nor a blank string."""
    value: Any = record
    for key in path:
        if not isinstance(value, Mapping) or key not in value:
            return None
        value = value[key]
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    return value


def split_authors(raw: Optional[Any], anonymous: str) -> List[str]:
    """Comma-separated byline to a list of trimmed names; ``[anonymous]`` when empty."""
    if isinstance(raw, (list, tuple)):
        names = [str(name).strip() for name in raw]
    elif raw is None:
        names = []
    else:
        names = [name.strip() for name in str(raw).split(",")]
    names = [name for name in names if name]
    return names or [anonymous]


class ProviderAdapter:
    """Fetch + normalize for a single upstream provider."""

    provider: str = ""
    key: str = ""

    def __init__(
        self,
        url: Optional[str],
        settings: Optional[ProviderSettings] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.settings = settings or get_settings().providers
        self.timeout = timeout if timeout is not None else get_settings().service.http_timeout
        self.transport = transport

    def __repr__(self) -> str:
        return f"<{type(self).__name__} provider={self.provider!r}>"

    async def fetch(self) -> List[Any]:
        """Fetch the provider's raw records, or raise ProviderFetchError."""
        if not self.url:
            raise ProviderFetchError("provider URL is not configured")

        try:
            response = await self._get()
        except httpx.HTTPStatusError as e:
            raise ProviderFetchError(f"non-success response: HTTP {e.response.status_code}") from e
        except RetryError as e:
            raise ProviderFetchError(f"transport failure: {e.__cause__}") from e

        records = self.extract_records(response)
        logger.info(f"📥 {self.provider}: fetched {len(records)} raw records")
        return records

    @async_retry(retryable_exceptions=(httpx.TransportError,))
    async def _get(self) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self.timeout, transport=self.transport, follow_redirects=True
        ) as client:
            response = await client.get(self.url)
            response.raise_for_status()
            return response

    def extract_records(self, response: httpx.Response) -> List[Any]:
        raise NotImplementedError

    def normalize(self, raw: Any) -> Optional[NormalizedArticle]:
        raise NotImplementedError

    def _build(self, **fields) -> Optional[NormalizedArticle]:
        try:
            return NormalizedArticle(provider=self.provider, **fields)
        except ValidationError as e:
            logger.debug(f"{self.provider}: rejected record {fields.get('url')!r}: {e.error_count()} errors")
            return None

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise ProviderFetchError(f"invalid JSON payload: {e}") from e


class NewsAPIAdapter(ProviderAdapter):
    """NewsAPI-style JSON: ``{"articles": [...]}``."""

    provider = "newsapi"
    key = "newsapi"

    def extract_records(self, response: httpx.Response) -> List[Any]:
        payload = self._json(response)
        records = payload.get("articles") if isinstance(payload, dict) else None
        if records is None:
            return []
        if not isinstance(records, list):
            raise ProviderFetchError("'articles' is not a list")
        return records

    def normalize(self, raw: Any) -> Optional[NormalizedArticle]:
        if not isinstance(raw, Mapping):
            return None

        required = {
            "title": _present(raw, "title"),
            "author": _present(raw, "author"),
            "description": _present(raw, "description"),
            "url": _present(raw, "url"),
            "source_name": _present(raw, "source", "name"),
        }
        if any(value is None for value in required.values()):
            return None

        return self._build(
            title=str(required["title"]),
            description=str(required["description"]),
            url=str(required["url"]),
            url_to_image=str(raw.get("urlToImage") or ""),
            published_at=parse_timestamp(raw.get("publishedAt")),
            content=str(raw.get("content") or ""),
            source_name=str(required["source_name"]),
            categories=[str(_present(raw, "category") or self.settings.default_category)],
            authors=split_authors(required["author"], self.settings.anonymous_author),
        )


class GuardianAdapter(ProviderAdapter):
    """Guardian-style JSON: ``{"response": {"results": [...]}}``.

    There is no separate description or body, so ``webTitle`` fills title,
    description and content alike.
    """

    provider = "The Guardian"
    key = "guardian"

    def extract_records(self, response: httpx.Response) -> List[Any]:
        payload = self._json(response)
        records = None
        if isinstance(payload, dict) and isinstance(payload.get("response"), dict):
            records = payload["response"].get("results")
        if records is None:
            return []
        if not isinstance(records, list):
            raise ProviderFetchError("'response.results' is not a list")
        return records

    def normalize(self, raw: Any) -> Optional[NormalizedArticle]:
        if not isinstance(raw, Mapping):
            return None

        title = _present(raw, "webTitle")
        url = _present(raw, "webUrl")
        published = _present(raw, "webPublicationDate")
        section = _present(raw, "sectionName")
        if title is None or url is None or published is None or section is None:
            return None

        title = str(title)
        return self._build(
            title=title,
            description=title,
            url=str(url),
            url_to_image="",
            published_at=parse_timestamp(published),
            content=title,
            source_name=str(_present(raw, "pillarName") or self.settings.guardian_default_source),
            categories=[str(section)],
            authors=split_authors(_present(raw, "author"), self.settings.anonymous_author),
        )


class NYTAdapter(ProviderAdapter):
    """RSS/XML feed (channel → item), parsed with feedparser.

    Items carry zero or more ``<category>`` elements, each becoming its own
    category.
    """

    provider = "New York Times"
    key = "nyt"

    def extract_records(self, response: httpx.Response) -> List[Any]:
        feed = feedparser.parse(response.content)
        if feed.bozo and not feed.entries:
            raise ProviderFetchError(f"unparseable feed: {feed.get('bozo_exception')}")
        return list(feed.entries)

    def normalize(self, raw: Any) -> Optional[NormalizedArticle]:
        title = _present(raw, "title")
        link = _present(raw, "link")
        published = self._published(raw)
        if title is None or link is None or published is None:
            return None

        description = raw.get("description") or raw.get("summary") or ""
        source = raw.get("source") or {}
        source_name = source.get("title") if isinstance(source, Mapping) else None

        categories = []
        for tag in raw.get("tags", []) or []:
            term = tag.get("term") if isinstance(tag, Mapping) else getattr(tag, "term", tag)
            if isinstance(term, str) and term.strip():
                categories.append(term.strip())

        return self._build(
            title=str(title),
            description=str(description),
            url=str(link).strip(),
            url_to_image="",
            published_at=published,
            content=str(description),
            source_name=source_name or self.settings.nyt_default_source,
            categories=categories,
            authors=split_authors(_present(raw, "author"), self.settings.anonymous_author),
        )

    @staticmethod
    def _published(raw: Mapping[str, Any]) -> Optional[datetime]:
        if _present(raw, "published") is None:
            return None
        parsed = raw.get("published_parsed")
        if parsed:
            return datetime(*parsed[:6])
        return parse_timestamp(raw.get("published"))


def build_adapters(settings: Optional[ProviderSettings] = None, transport=None) -> List[ProviderAdapter]:
    """Adapters in their fixed processing order."""
    settings = settings or get_settings().providers
    return [
        NewsAPIAdapter(settings.news_api_url, settings, transport=transport),
        GuardianAdapter(settings.guardian_api_url, settings, transport=transport),
        NYTAdapter(settings.nyt_feed_url, settings, transport=transport),
    ]
