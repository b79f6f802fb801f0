"""
Raw record schemas returned by the remote API.

Only the fields needed to build a CommonItem are modelled; everything
else in a provider payload is ignored. Field names follow the provider's
camelCase JSON through aliases.
"""

from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator


class RawModel(BaseModel):
    """Base for provider payload models."""

    class Config:
        extra = "ignore"
        populate_by_name = True
        frozen = True

    @field_validator("*", mode="before")
    @classmethod
    def blank_to_none(cls, v):
        # Providers send "" for unset scalar fields
        if isinstance(v, str) and v.strip() == "":
            return None
        return v


class EventDateTime(RawModel):
    """Start or end of an event: either an all-day date or a date-time."""

    date: Optional[str] = None  # yyyy-mm-dd for all-day events
    date_time: Optional[str] = Field(default=None, alias="dateTime")  # RFC3339
    time_zone: Optional[str] = Field(default=None, alias="timeZone")  # IANA name


class EventPerson(RawModel):
    """Creator or organizer of an event."""

    id: Optional[str] = None
    display_name: Optional[str] = Field(default=None, alias="displayName")
    email: Optional[str] = None
    is_self: bool = Field(default=False, alias="self")


class EventAttendee(EventPerson):
    """Attendee of an event."""

    additional_guests: int = Field(default=0, alias="additionalGuests")
    comment: Optional[str] = None
    optional: bool = False
    organizer: bool = False
    resource: bool = False
    response_status: Optional[str] = Field(default=None, alias="responseStatus")


class GeoPoint(RawModel):
    """Structured coordinates, for providers that expose them."""

    latitude: float
    longitude: float


class PhotoMetadata(RawModel):
    camera_make: Optional[str] = Field(default=None, alias="cameraMake")
    camera_model: Optional[str] = Field(default=None, alias="cameraModel")
    focal_length: Optional[float] = Field(default=None, alias="focalLength")
    aperture_f_number: Optional[float] = Field(default=None, alias="apertureFNumber")
    iso_equivalent: Optional[int] = Field(default=None, alias="isoEquivalent")
    exposure_time: Optional[str] = Field(default=None, alias="exposureTime")  # e.g. "0.008s"


class VideoMetadata(RawModel):
    camera_make: Optional[str] = Field(default=None, alias="cameraMake")
    camera_model: Optional[str] = Field(default=None, alias="cameraModel")
    fps: Optional[float] = None
    status: Optional[str] = None  # Processing status, "READY" when downloadable


class MediaMetadata(RawModel):
    creation_time: Optional[str] = Field(default=None, alias="creationTime")
    width: Optional[int] = None
    height: Optional[int] = None
    photo: Optional[PhotoMetadata] = None
    video: Optional[VideoMetadata] = None


class ContributorInfo(RawModel):
    display_name: Optional[str] = Field(default=None, alias="displayName")
    profile_picture_base_url: Optional[str] = Field(
        default=None, alias="profilePictureBaseUrl"
    )


class EventRecord(RawModel):
    """
    A record from the listing endpoint.

    Calendar events carry start/end and people; records with binary
    payloads additionally carry ``baseUrl`` and a ``mediaMetadata`` block.
    """

    id: Optional[str] = None
    status: Optional[str] = None
    html_link: Optional[str] = Field(default=None, alias="htmlLink")
    created: Optional[str] = None
    updated: Optional[str] = None
    summary: Optional[str] = None
    description: Optional[str] = None
    # Free text for calendars; structured only where the provider has coordinates
    location: Optional[Union[GeoPoint, str]] = None
    creator: Optional[EventPerson] = None
    organizer: Optional[EventPerson] = None
    start: Optional[EventDateTime] = None
    end: Optional[EventDateTime] = None
    end_time_unspecified: bool = Field(default=False, alias="endTimeUnspecified")
    recurring_event_id: Optional[str] = Field(default=None, alias="recurringEventId")
    attendees: List[EventAttendee] = Field(default_factory=list)

    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    mime_type: Optional[str] = Field(default=None, alias="mimeType")
    filename: Optional[str] = None
    media_metadata: Optional[MediaMetadata] = Field(default=None, alias="mediaMetadata")
    contributor_info: Optional[ContributorInfo] = Field(
        default=None, alias="contributorInfo"
    )
