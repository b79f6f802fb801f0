"""
Shared type definitions for the Timeline Agent connectors.

This module contains the types that flow between the ingestion layer,
the processing layer and the host. They are the contract between a
connector and whatever consumes its item stream.
"""

from datetime import datetime, timedelta
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field, field_validator, model_validator


# ============================================================================
# Enums
# ============================================================================


class ItemClass(str, Enum):
    """Coarse item category used to pick a storage/rendering strategy."""

    EVENT = "event"
    MEDIA = "media"
    LOCATION = "location"
    MESSAGE = "message"
    POST = "post"


class MediaKind(str, Enum):
    """Kind of binary payload referenced by a FileRef."""

    PHOTO = "photo"
    VIDEO = "video"
    OTHER = "other"


class ProcessingStatus(str, Enum):
    """Status of an ingestion run."""

    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# ============================================================================
# Core Data Models
# ============================================================================


class Owner(BaseModel):
    """Best-effort attribution of an item."""

    id: Optional[str] = None
    name: Optional[str] = None

    class Config:
        frozen = True


class Attendee(BaseModel):
    """A participant of an event."""

    name: Optional[str] = None
    email: Optional[str] = None
    response_status: Optional[str] = None
    organizer: bool = False
    optional: bool = False
    is_self: bool = False

    class Config:
        frozen = True


class Coordinates(BaseModel):
    """A real geographic position reported by the provider."""

    latitude: float = Field(ge=-90.0, le=90.0)
    longitude: float = Field(ge=-180.0, le=180.0)

    class Config:
        frozen = True


class ItemMetadata(BaseModel):
    """
    Numeric and descriptive facts about an item.

    Every field is optional. A missing value means "unknown"; zero is a
    valid measurement and is never used as a placeholder.
    """

    width: Optional[int] = None
    height: Optional[int] = None
    camera_make: Optional[str] = None
    camera_model: Optional[str] = None
    focal_length: Optional[float] = None
    aperture_f_number: Optional[float] = None
    iso_equivalent: Optional[int] = None
    exposure_time: Optional[timedelta] = None
    fps: Optional[float] = None

    class Config:
        frozen = True


class FileRef(BaseModel):
    """Lazy pointer to out-of-band binary content."""

    url: str
    mime_type: Optional[str] = None
    hash: Optional[bytes] = None
    filename: Optional[str] = None
    media_kind: MediaKind = MediaKind.OTHER
    processing_status: Optional[str] = None  # e.g. "READY" for videos

    class Config:
        frozen = True


class CommonItem(BaseModel):
    """Normalized, provider-independent item emitted by a connector."""

    id: str = Field(min_length=1)
    source_id: str
    timestamp: datetime
    item_class: ItemClass
    title: Optional[str] = None
    text_body: Optional[str] = None
    end_timestamp: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    owner: Owner = Field(default_factory=Owner)
    attendees: Tuple[Attendee, ...] = ()
    metadata: ItemMetadata = Field(default_factory=ItemMetadata)
    location: Optional[Coordinates] = None
    location_text: Optional[str] = None  # Free-form place, never geocoded
    file_ref: Optional[FileRef] = None
    url: Optional[str] = None
    status: Optional[str] = None

    class Config:
        frozen = True

    @field_validator("timestamp")
    @classmethod
    def validate_timestamp(cls, v: datetime) -> datetime:
        if v.tzinfo is None:
            raise ValueError("timestamp must be timezone-aware")
        return v


# ============================================================================
# Listing Models
# ============================================================================


class ListingWindow(BaseModel):
    """Time bounds for a listing pass. Day-level precision is acceptable."""

    start: Optional[datetime] = None
    end: Optional[datetime] = None

    class Config:
        frozen = True

    @model_validator(mode="after")
    def validate_bounds(self) -> "ListingWindow":
        if self.start and self.end and self.end < self.start:
            raise ValueError("window end precedes window start")
        return self

    @property
    def is_unbounded(self) -> bool:
        return self.start is None and self.end is None


class ListOptions(BaseModel):
    """Options the host passes to a connector invocation."""

    window: ListingWindow = Field(default_factory=ListingWindow)
    file_import_path: Optional[str] = None
    timeout_seconds: Optional[float] = Field(default=None, gt=0)

    class Config:
        frozen = True


class RecordPage(BaseModel):
    """One page of raw records returned by a listing call."""

    items: List[dict] = Field(default_factory=list)
    next_page_token: Optional[str] = None

    class Config:
        frozen = True


class IngestionSummary(BaseModel):
    """Result of an ingestion run."""

    source_id: str
    status: ProcessingStatus
    items_emitted: int = 0
    items_skipped: int = 0
    errors: List[str] = Field(default_factory=list)
    started_at: datetime
    completed_at: Optional[datetime] = None
    duration_seconds: float = 0.0

    class Config:
        frozen = False


# ============================================================================
# Registration Models
# ============================================================================


class RateLimitConfig(BaseModel):
    """Declared request budget of a data source."""

    requests_per_hour: float = Field(gt=0)
    burst_size: int = Field(default=1, ge=1)

    class Config:
        frozen = True


class DataSource(BaseModel):
    """Declarative metadata a connector hands to the host registry."""

    id: str = Field(min_length=1)
    name: str
    oauth_provider: Optional[str] = None
    scopes: Tuple[str, ...] = ()
    rate_limit: RateLimitConfig

    class Config:
        frozen = True
