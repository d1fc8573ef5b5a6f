"""Pydantic schemas for show, review and audience score records.

Records are validated once at the ingestion boundary. JSON keys are
camelCase (as written by the scrapers); Python attributes are snake_case.
Unknown keys are kept so annotated records can be written back without
losing data owned by other pipeline stages.
"""

import re
from datetime import date, datetime
from enum import StrEnum

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.etl.normalization import (
    normalize_critic,
    normalize_outlet,
    normalize_title,
    show_slug,
)

# =============================================================================
# CONSTANTS
# =============================================================================

EXCERPT_FIELDS = ("dtli_excerpt", "bww_excerpt", "show_score_excerpt", "nyc_theatre_excerpt")
"""Aggregator excerpt attributes on a review."""

_ISO_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")
_DATE_FORMATS = ("%B %d, %Y", "%b %d, %Y", "%b. %d, %Y", "%m/%d/%Y", "%d %B %Y")

_RECORD_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
    str_strip_whitespace=True,
)


# =============================================================================
# SHOWS
# =============================================================================


class ShowStatus(StrEnum):
    """Run status of a production."""

    OPEN = "open"
    CLOSED = "closed"
    PREVIEWS = "previews"


class Show(BaseModel):
    """A single production of a show.

    Attributes:
        id: Unique show id (slug with opening year, e.g. "cabaret-2024").
        title: Display title.
        slug: Unique URL slug (derived from title when missing).
        venue: Theatre name.
        opening_date: Official opening night.
        closing_date: Final performance (None while running).
        previews_start_date: First preview.
        status: Run status.
        cast: Principal cast names.
        creative_team: Director, writers, designers.
    """

    model_config = _RECORD_CONFIG

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=500)
    slug: str = ""
    venue: str | None = None
    opening_date: date | None = None
    closing_date: date | None = None
    previews_start_date: date | None = None
    status: ShowStatus = ShowStatus.OPEN
    cast: list[str] = Field(default_factory=list)
    creative_team: list[str] = Field(default_factory=list)

    @field_validator("slug", mode="before")
    @classmethod
    def ensure_slug(cls, v: str | None) -> str:
        """Keep explicit slugs; an empty slug is filled in by model_post_init."""
        return v or ""

    @field_validator("status", mode="before")
    @classmethod
    def lower_status(cls, v: str | ShowStatus) -> str | ShowStatus:
        """Accept "Open"/"CLOSED" spellings from scrapers."""
        return v.lower() if isinstance(v, str) else v

    @field_validator("cast", "creative_team", mode="before")
    @classmethod
    def ensure_name_list(cls, v: list | str | None) -> list:
        """Accept a single name, a list of names or a list of {name: ...} dicts."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        names = []
        for item in v:
            if isinstance(item, dict):
                item = item.get("name")
            if item:
                names.append(item)
        return names

    def model_post_init(self, _: object) -> None:
        """Derive the slug from the title when the record has none."""
        if not self.slug:
            self.slug = show_slug(self.title)

    @property
    def normalized_title(self) -> str:
        """Canonical title key, recomputed on demand and never stored."""
        return normalize_title(self.title)

    @property
    def year(self) -> int | None:
        """Opening year, falling back to first preview."""
        start = self.opening_date or self.previews_start_date
        return start.year if start else None

    @property
    def run_start(self) -> date | None:
        """Earliest known date of the run."""
        return self.previews_start_date or self.opening_date

    @property
    def people(self) -> list[str]:
        """Cast and creative team names."""
        return [*self.cast, *self.creative_team]


# =============================================================================
# REVIEWS
# =============================================================================


class Review(BaseModel):
    """A critic review of one show, possibly merged from several sources.

    Attributes:
        show_id: Show the review belongs to.
        outlet_id: Canonical outlet id if the scraper provided one.
        outlet: Outlet display name as scraped.
        critic_name: Byline (None for unbylined or wire pieces).
        url: Article URL.
        publish_date: Publication date.
        full_text: Scraped article text.
        assigned_score: 0-100 score from the sentiment oracle (opaque).
        source_tags: Sources the record was collected from.
        wrong_full_text: Quarantined text that failed verification.
    """

    model_config = _RECORD_CONFIG

    show_id: str = Field(min_length=1)
    outlet_id: str | None = None
    outlet: str = ""
    critic_name: str | None = None
    url: str | None = None
    publish_date: date | None = None

    # Content
    full_text: str | None = None
    dtli_excerpt: str | None = None
    bww_excerpt: str | None = None
    show_score_excerpt: str | None = None
    nyc_theatre_excerpt: str | None = None

    # Scores
    assigned_score: float | None = Field(default=None, ge=0, le=100)
    original_score: str | float | None = None
    original_rating: str | None = None

    # Provenance
    source_tags: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("sources", "sourceTags", "source_tags"),
        serialization_alias="sources",
    )

    # Quarantine
    wrong_full_text: str | None = None
    content_mismatch_note: str | None = None
    content_mismatch_score: float | None = None
    content_tier: str | None = None

    @field_validator("source_tags", mode="before")
    @classmethod
    def ensure_list(cls, v: list[str] | str | None) -> list[str]:
        """Convert sources to list if string."""
        if v is None:
            return []
        if isinstance(v, str):
            return [v]
        return v

    @field_validator("publish_date", mode="before")
    @classmethod
    def parse_publish_date(cls, v: str | date | None) -> str | date | None:
        """Accept ISO timestamps and long-form dates; unparseable dates are missing."""
        if not isinstance(v, str):
            return v
        v = v.strip()
        if _ISO_DATE_PATTERN.match(v):
            try:
                return date.fromisoformat(v[:10])
            except ValueError:
                return None
        for fmt in _DATE_FORMATS:
            try:
                return datetime.strptime(v, fmt).date()
            except ValueError:
                continue
        return None

    @property
    def normalized_outlet_id(self) -> str:
        """Canonical outlet id from the scraped id or display name."""
        return normalize_outlet(self.outlet_id or self.outlet)

    @property
    def normalized_critic(self) -> str:
        """Canonical critic slug."""
        return normalize_critic(self.critic_name)

    @property
    def has_critic(self) -> bool:
        """Whether the review carries a usable byline."""
        return bool(self.critic_name and self.critic_name.strip())

    @property
    def dedup_key(self) -> tuple[str, str, str]:
        """Key unique within a show's review set."""
        return (self.show_id, self.normalized_outlet_id, self.normalized_critic)

    @property
    def excerpts(self) -> dict[str, str]:
        """Non-empty aggregator excerpts keyed by attribute name."""
        return {name: getattr(self, name) for name in EXCERPT_FIELDS if getattr(self, name)}

    @property
    def is_quarantined(self) -> bool:
        """Whether text has been moved aside pending manual review."""
        return self.wrong_full_text is not None

    def to_record(self) -> dict:
        """Serialize with camelCase keys, keeping unknown keys."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# =============================================================================
# AUDIENCE SCORES
# =============================================================================


class SourceScore(BaseModel):
    """Score from one audience source.

    Attributes:
        score: 0-100 score (None when the source has no data).
        sample_size: Number of independent ratings/posts behind the score.
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    score: float | None = Field(default=None, ge=0, le=100)
    sample_size: int | None = Field(
        default=None,
        ge=0,
        validation_alias=AliasChoices("reviewCount", "sampleSize", "sample_size"),
        serialization_alias="reviewCount",
    )

    @property
    def is_present(self) -> bool:
        """Whether the source contributes a score."""
        return self.score is not None


class BuzzSources(BaseModel):
    """Per-source audience scores for one show.

    Attributes:
        show_score: Crowd rating site (Show Score).
        mezzanine: Critic-consensus engine / second rating site.
        reddit: Discourse-derived sentiment.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    show_score: SourceScore | None = None
    mezzanine: SourceScore | None = None
    reddit: SourceScore | None = None
