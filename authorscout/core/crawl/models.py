"""Domain types shared by the crawl components."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from urllib.parse import quote

from pydantic import BaseModel, Field, field_serializer


class SourceType(str, Enum):
    """Strategy that produced a content reference."""

    SEARCH = "search"
    TAG = "tag"
    SITEMAP = "sitemap"


class CrawlPhase(str, Enum):
    """Phase reported through Progress updates."""

    COLLECTING = "collecting"
    EXTRACTING = "extracting"
    PROFILES = "profiles"
    DONE = "done"


@dataclass(frozen=True)
class SourceDescriptor:
    """A single source to collect content references from."""

    source_type: SourceType
    value: str
    url: str

    @classmethod
    def search(cls, keyword: str, base_url: str) -> "SourceDescriptor":
        return cls(SourceType.SEARCH, keyword, f"{base_url}/search?query={quote(keyword)}")

    @classmethod
    def tag(cls, tag: str, base_url: str) -> "SourceDescriptor":
        return cls(SourceType.TAG, tag, f"{base_url}/tagged/{tag}")

    @classmethod
    def sitemap(cls, sitemap_url: str) -> "SourceDescriptor":
        return cls(SourceType.SITEMAP, sitemap_url, sitemap_url)


@dataclass(frozen=True)
class ContentRef:
    """Candidate content page produced by the frontier collector."""

    slug: str
    url: str
    title: str
    provenance: str
    source_type: SourceType


@dataclass
class ExtractionResult:
    """Author identity and relevance derived from one content page."""

    ref: ContentRef
    handle: str
    name: str
    profile_url: str
    title: str
    matched_keywords: list[str] = field(default_factory=list)
    bio: str | None = None
    website: str | None = None

    @property
    def keyword(self) -> str:
        """Keyword the sample article is attributed to."""
        return self.matched_keywords[0] if self.matched_keywords else self.ref.provenance


@dataclass
class Progress:
    """Point-in-time progress of a crawl run."""

    phase: CrawlPhase
    current: int = 0
    total: int = 0
    message: str = ""


@dataclass
class RunMetrics:
    """Measurements of one run handed to the result finalizer."""

    authors_at_start: int = 0
    articles_collected: int = 0
    processing_time_ms: int = 0


class SampleArticle(BaseModel):
    """One article observed for an author."""

    title: str
    url: str
    keyword: str = ""


class Author(BaseModel):
    """Canonical author record keyed by handle."""

    handle: str
    name: str = ""
    profile_url: str
    bio: str | None = None
    twitter: str | None = None
    linkedin: str | None = None
    github: str | None = None
    website: str | None = None
    matched_keywords: set[str] = Field(default_factory=set)
    sample_articles: list[SampleArticle] = Field(default_factory=list)

    @field_serializer("matched_keywords")
    def serialize_keywords(self, keywords: set[str]) -> list[str]:
        return sorted(keywords)


class RunRecord(BaseModel):
    """Summary of one completed run kept in the store's history."""

    finished_at: datetime
    new_authors: int
    total_authors: int
    articles_processed: int
