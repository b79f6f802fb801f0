"""
Test fixtures and sample data for development and testing.

This module provides builders for raw provider records, as returned by
the events listing endpoint, and for normalized items.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from timeline_agent.types import CommonItem, ItemClass, Owner, RecordPage


# ============================================================================
# Sample Raw Records
# ============================================================================


def create_sample_event(
    event_id: str = "evt-1",
    start: Optional[str] = "2024-05-01T09:00:00Z",
    summary: str = "Team sync",
    **overrides: Any,
) -> Dict[str, Any]:
    """Create a raw calendar event as returned by events.list."""
    event: Dict[str, Any] = {
        "kind": "calendar#event",
        "id": event_id,
        "status": "confirmed",
        "htmlLink": f"https://calendar.example.com/event?eid={event_id}",
        "created": "2024-04-20T08:00:00.000Z",
        "updated": "2024-04-21T10:30:00.000Z",
        "summary": summary,
        "description": "Weekly planning",
        "organizer": {"email": "alice@example.com", "displayName": "Alice"},
        "creator": {"email": "bob@example.com"},
        "end": {"dateTime": "2024-05-01T09:30:00Z"},
    }
    if start is not None:
        event["start"] = {"dateTime": start}
    event.update(overrides)
    return event


def create_sample_all_day_event(
    event_id: str = "evt-all-day",
    day: str = "2024-05-01",
    time_zone: Optional[str] = None,
) -> Dict[str, Any]:
    """Create a raw all-day event."""
    start: Dict[str, Any] = {"date": day}
    if time_zone:
        start["timeZone"] = time_zone
    return {
        "id": event_id,
        "summary": "Holiday",
        "start": start,
        "end": {"date": day},
    }


def create_sample_photo_record(
    record_id: str = "photo-1",
    photo: Optional[Dict[str, Any]] = None,
    **overrides: Any,
) -> Dict[str, Any]:
    """Create a raw record carrying a photo payload."""
    record: Dict[str, Any] = {
        "id": record_id,
        "baseUrl": f"https://media.example.com/{record_id}",
        "mimeType": "image/jpeg",
        "filename": f"{record_id}.jpg",
        "mediaMetadata": {
            "creationTime": "2024-03-10T14:15:16Z",
            "width": "4032",
            "height": "3024",
            "photo": photo if photo is not None else {
                "cameraMake": "Google",
                "cameraModel": "Pixel 8",
                "focalLength": 6.9,
                "apertureFNumber": 1.68,
                "isoEquivalent": 100,
                "exposureTime": "0.008s",
            },
        },
        "contributorInfo": {"displayName": "Carol"},
    }
    record.update(overrides)
    return record


def create_sample_video_record(
    record_id: str = "video-1",
    status: Optional[str] = "READY",
) -> Dict[str, Any]:
    """Create a raw record carrying a video payload."""
    video: Dict[str, Any] = {"cameraMake": "Google", "fps": 30.0}
    if status is not None:
        video["status"] = status
    return {
        "id": record_id,
        "baseUrl": f"https://media.example.com/{record_id}",
        "mimeType": "video/mp4",
        "filename": f"{record_id}.mp4",
        "mediaMetadata": {
            "creationTime": "2024-03-11T18:00:00Z",
            "width": "1920",
            "height": "1080",
            "video": video,
        },
    }


def create_sample_events(count: int = 3, prefix: str = "evt") -> List[Dict[str, Any]]:
    """Create multiple raw events, ascending by start time."""
    return [
        create_sample_event(
            event_id=f"{prefix}-{i}",
            start=f"2024-05-{i + 1:02d}T09:00:00Z",
            summary=f"Event {i}",
        )
        for i in range(count)
    ]


def create_sample_page(
    items: List[Dict[str, Any]], next_page_token: Optional[str] = None
) -> RecordPage:
    """Create one page of raw records."""
    return RecordPage(items=items, next_page_token=next_page_token)


# ============================================================================
# Sample Normalized Items
# ============================================================================


def create_sample_item(
    item_id: str = "item-1",
    source_id: str = "test_source",
    day: int = 1,
) -> CommonItem:
    """Create a normalized item."""
    return CommonItem(
        id=item_id,
        source_id=source_id,
        timestamp=datetime(2024, 5, day, 9, 0, tzinfo=timezone.utc),
        item_class=ItemClass.EVENT,
        title=f"Item {item_id}",
        owner=Owner(name="Alice"),
    )


def create_sample_items(count: int = 3, prefix: str = "item") -> List[CommonItem]:
    """Create multiple normalized items."""
    return [create_sample_item(f"{prefix}-{i}", day=i + 1) for i in range(count)]
