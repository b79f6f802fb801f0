"""
Metadata normalization for raw provider records.

This module maps a raw record from the listing endpoint onto the
CommonItem contract: timestamps, numeric media facts, people and
location, each under its own parse and validation rules.
"""

import logging
import re
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Any, Mapping, Optional, Tuple
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import ValidationError

from timeline_agent.ingestion.base import NormalizationError
from timeline_agent.processing.records import (
    EventAttendee,
    EventDateTime,
    EventPerson,
    EventRecord,
    GeoPoint,
)
from timeline_agent.types import (
    Attendee,
    CommonItem,
    Coordinates,
    FileRef,
    ItemClass,
    ItemMetadata,
    MediaKind,
    Owner,
)

logger = logging.getLogger(__name__)

# Go-style durations such as "0.008s", "1.5ms" or "1m30s"
_DURATION_RE = re.compile(r"(?:(?:\d+(?:\.\d*)?|\.\d+)(?:ns|us|µs|μs|ms|s|m|h))+")
_DURATION_PART_RE = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "μs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(text: str) -> timedelta:
    """
    Parse a Go-style duration string.

    Args:
        text: Duration such as "0.008s" or "2m30s"; "0" is accepted

    Returns:
        Duration as a timedelta

    Raises:
        ValueError: If the text is not a valid duration
    """
    value = text.strip()
    sign = 1
    if value[:1] in ("+", "-"):
        sign = -1 if value[0] == "-" else 1
        value = value[1:]

    if value == "0":
        return timedelta(0)
    if not _DURATION_RE.fullmatch(value):
        raise ValueError(f"invalid duration {text!r}")

    seconds = sum(
        float(amount) * _DURATION_UNITS[unit]
        for amount, unit in _DURATION_PART_RE.findall(value)
    )
    return timedelta(seconds=sign * seconds)


def _resolve_zone(name: Optional[str]) -> tzinfo:
    if not name:
        return timezone.utc
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"unknown time zone {name!r}")


def parse_timestamp(value: str, zone_name: Optional[str] = None) -> datetime:
    """
    Parse an RFC3339 date-time or a yyyy-mm-dd date into an aware datetime.

    Date-only values map to midnight. Values without an offset are read in
    ``zone_name`` when given, otherwise UTC.

    Raises:
        ValueError: If the value or zone cannot be parsed
    """
    text = value.strip()
    if len(text) == 10:
        parsed = datetime.combine(date.fromisoformat(text), time())
    else:
        # fromisoformat accepts "Z" from Python 3.11 on; be explicit anyway
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_resolve_zone(zone_name))
    return parsed


def _parse_event_time(when: EventDateTime) -> Optional[datetime]:
    if when.date_time:
        return parse_timestamp(when.date_time, when.time_zone)
    if when.date:
        return parse_timestamp(when.date, when.time_zone)
    return None


class MetadataNormalizer:
    """
    Maps raw listing records onto CommonItem.

    The normalizer is stateless; ``normalize`` has no side effects and
    either returns a complete item or raises NormalizationError.
    """

    def __init__(self, source_id: str):
        """
        Initialize the normalizer.

        Args:
            source_id: Id of the data source stamped on every item
        """
        self.source_id = source_id

    def normalize(self, raw: Mapping[str, Any]) -> CommonItem:
        """
        Normalize one raw record.

        Args:
            raw: Decoded JSON object from the listing response

        Returns:
            Normalized item

        Raises:
            NormalizationError: If the record cannot produce a valid item
        """
        if not isinstance(raw, Mapping):
            raise NormalizationError(f"record is a {type(raw).__name__}, expected an object")

        raw_id = raw.get("id") if isinstance(raw.get("id"), str) else None

        try:
            record = EventRecord.model_validate(raw)
        except ValidationError as e:
            raise NormalizationError(
                f"invalid record: {e.error_count()} field error(s): {_first_error(e)}",
                record_id=raw_id,
            ) from e

        if not record.id:
            raise NormalizationError("record has no id")

        try:
            timestamp = self._timestamp(record)
            end_timestamp = self._end_timestamp(record)
            updated_at = parse_timestamp(record.updated) if record.updated else None
            metadata = self._metadata(record)
            location, location_text = self._location(record)

            return CommonItem(
                id=record.id,
                source_id=self.source_id,
                timestamp=timestamp,
                item_class=ItemClass.MEDIA if record.media_metadata else ItemClass.EVENT,
                title=record.summary,
                text_body=record.description,
                end_timestamp=end_timestamp,
                updated_at=updated_at,
                owner=self._owner(record),
                attendees=tuple(self._attendee(a) for a in record.attendees),
                metadata=metadata,
                location=location,
                location_text=location_text,
                file_ref=self._file_ref(record),
                url=record.html_link,
                status=record.status,
            )
        except NormalizationError as e:
            e.record_id = record.id
            raise
        except (ValueError, ValidationError) as e:
            raise NormalizationError(str(e), record_id=record.id) from e

    # ------------------------------------------------------------------------
    # Timestamps
    # ------------------------------------------------------------------------

    def _timestamp(self, record: EventRecord) -> datetime:
        """
        Resolve the authoritative time of a record.

        Precedence: start.dateTime, start.date, mediaMetadata.creationTime,
        created. The first field present decides; if it does not parse the
        record fails rather than falling through to a later field.
        """
        if record.start and (record.start.date_time or record.start.date):
            try:
                return _parse_event_time(record.start)
            except ValueError as e:
                raise NormalizationError(f"parsing start time: {e}")

        for name, value in (
            ("creation time", record.media_metadata and record.media_metadata.creation_time),
            ("created", record.created),
        ):
            if value:
                try:
                    return parse_timestamp(value)
                except ValueError as e:
                    raise NormalizationError(f"parsing {name}: {e} ({name}={value})")

        raise NormalizationError("record has no start or creation time")

    def _end_timestamp(self, record: EventRecord) -> Optional[datetime]:
        if not record.end or record.end_time_unspecified:
            return None
        try:
            return _parse_event_time(record.end)
        except ValueError as e:
            raise NormalizationError(f"parsing end time: {e}")

    # ------------------------------------------------------------------------
    # Media metadata
    # ------------------------------------------------------------------------

    def _metadata(self, record: EventRecord) -> ItemMetadata:
        media = record.media_metadata
        if media is None:
            return ItemMetadata()

        fields = {"width": media.width, "height": media.height}

        if media.photo is not None:
            photo = media.photo
            fields.update(
                camera_make=photo.camera_make,
                camera_model=photo.camera_model,
                focal_length=photo.focal_length,
                aperture_f_number=photo.aperture_f_number,
                iso_equivalent=photo.iso_equivalent,
            )
            if photo.exposure_time:
                try:
                    fields["exposure_time"] = parse_duration(photo.exposure_time)
                except ValueError as e:
                    raise NormalizationError(
                        f"parsing exposure time as duration: {e} "
                        f"(exposure_time={photo.exposure_time})"
                    )
        elif media.video is not None:
            video = media.video
            fields.update(
                camera_make=video.camera_make,
                camera_model=video.camera_model,
                fps=video.fps,
            )

        return ItemMetadata(**fields)

    # ------------------------------------------------------------------------
    # People and places
    # ------------------------------------------------------------------------

    def _owner(self, record: EventRecord) -> Owner:
        """
        Attribute the record to a person.

        Display names win over everything else. The identifier is only set
        from an explicit profile id; it is never derived from the name.
        """
        people = [p for p in (record.organizer, record.creator) if p is not None]

        for person in people:
            if person.display_name:
                return Owner(id=person.id, name=person.display_name)

        if record.contributor_info and record.contributor_info.display_name:
            return Owner(name=record.contributor_info.display_name)

        for person in people:
            if person.email or person.id:
                return Owner(id=person.id, name=person.email)

        return Owner()

    @staticmethod
    def _attendee(attendee: EventAttendee) -> Attendee:
        return Attendee(
            name=attendee.display_name,
            email=attendee.email,
            response_status=attendee.response_status,
            organizer=attendee.organizer,
            optional=attendee.optional,
            is_self=attendee.is_self,
        )

    @staticmethod
    def _location(record: EventRecord) -> Tuple[Optional[Coordinates], Optional[str]]:
        # Coordinates only ever come from a structured position
        if isinstance(record.location, GeoPoint):
            return (
                Coordinates(
                    latitude=record.location.latitude,
                    longitude=record.location.longitude,
                ),
                None,
            )
        return None, record.location

    @staticmethod
    def _file_ref(record: EventRecord) -> Optional[FileRef]:
        if not record.base_url:
            return None

        media = record.media_metadata
        kind = MediaKind.OTHER
        status = None
        if media is not None and media.photo is not None:
            kind = MediaKind.PHOTO
        elif media is not None and media.video is not None:
            kind = MediaKind.VIDEO
            status = media.video.status

        return FileRef(
            url=record.base_url,
            mime_type=record.mime_type,
            filename=record.filename,
            media_kind=kind,
            processing_status=status,
        )


def _first_error(error: ValidationError) -> str:
    details = error.errors()
    if not details:
        return str(error)
    first = details[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    return f"{location}: {first.get('msg')}"
