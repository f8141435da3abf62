from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


class NormalizedArticle(BaseModel):
    """Provider-agnostic article record, the gate every record passes before persistence."""

    title: str = Field(..., min_length=1, description="Article headline")
    description: str = Field("", description="Short description or standfirst")
    url: str = Field(..., min_length=1, description="Link to the full article")
    url_to_image: str = Field("", description="Lead image URL, empty when the provider has none")
    published_at: datetime = Field(..., description="Publication timestamp, naive UTC")
    content: str = Field("", description="Body text as supplied by the provider")
    provider: str = Field(..., min_length=1, description="Tag of the adapter that produced the record")
    source_name: str = Field(..., min_length=1, description="Natural key of the owning news source")
    categories: List[str] = Field(default_factory=list, description="Category natural keys")
    authors: List[str] = Field(default_factory=list, description="Author natural keys")

    @field_validator("title", "url", "provider", "source_name")
    @classmethod
    def not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("must not be blank")
        return v

    @field_validator("categories", "authors")
    @classmethod
    def unique_names(cls, v: List[str]) -> List[str]:
        """Drop blanks and repeats, keeping first-seen order."""
        seen = []
        for name in v:
            if name and name not in seen:
                seen.append(name)
        return seen


class ArticleView(BaseModel):
    id: int
    title: str
    description: str
    url: str
    publishedAt: datetime
    urlToImage: str
    provider: str
    news_source: str
    categories: List[str]
    authors: List[str]

    @classmethod
    def from_orm_article(cls, article) -> "ArticleView":
        return cls(
            id=article.id,
            title=article.title,
            description=article.description,
            url=article.url,
            publishedAt=article.published_at,
            urlToImage=article.url_to_image,
            provider=article.provider,
            news_source=article.source.name,
            categories=[category.name for category in article.categories],
            authors=[author.name for author in article.authors],
        )


class ArticlePage(BaseModel):
    """Length-aware page envelope returned by the article listing."""

    current_page: int
    data: List[ArticleView]
    first_page_url: str
    from_: Optional[int] = Field(None, alias="from")
    last_page: int
    last_page_url: str
    next_page_url: Optional[str]
    path: str
    per_page: int
    prev_page_url: Optional[str]
    to: Optional[int]
    total: int

    model_config = {"populate_by_name": True}


class NamedEntity(BaseModel):
    id: int
    name: str

    model_config = {"from_attributes": True}


class ProviderReport(BaseModel):
    fetched: int = 0
    created: int = 0
    skipped: int = 0
    errors: int = 0


class IngestionReport(BaseModel):
    created: int = Field(0, description="Articles written across all providers")
    skipped: int = Field(0, description="Records rejected for missing required fields")
    errors: int = Field(0, description="Records dropped by resolution or persistence failures")
    per_provider_errors: Dict[str, str] = Field(
        default_factory=dict, description="Provider tag to reason its batch was abandoned"
    )
    per_provider: Dict[str, ProviderReport] = Field(default_factory=dict)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None


class PreferencesUpdate(BaseModel):
    preferred_categories: Optional[List[int]] = None
    preferred_authors: Optional[List[int]] = None
    preferred_sources: Optional[List[int]] = None


class PreferencesOut(BaseModel):
    user_id: int
    preferred_categories: List[NamedEntity]
    preferred_authors: List[NamedEntity]
    preferred_sources: List[NamedEntity]
