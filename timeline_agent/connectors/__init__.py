"""
Connectors for concrete data sources.

Nothing is registered on import; the host calls each module's
``register`` with its own SourceRegistry.

Usage:
    from timeline_agent.connectors import google_calendar
    from timeline_agent.ingestion import SourceRegistry

    registry = SourceRegistry()
    google_calendar.register(registry)
    connector = registry.create_connector("google_calendar", client)
"""

from timeline_agent.connectors.google_calendar import (
    DATA_SOURCE as GOOGLE_CALENDAR,
    GoogleCalendarApi,
    GoogleCalendarConnector,
)

__all__ = [
    "GOOGLE_CALENDAR",
    "GoogleCalendarApi",
    "GoogleCalendarConnector",
]
