"""Shared display formatting helpers.

Keeping formatting here prevents drift between the CLI and the terminal UI
and keeps chat lines, calendar rows and notices consistent regardless of
where they are rendered.
"""

from __future__ import annotations

from typing import Any, Optional

from rich.markup import escape

from clubhub.core.models import CalendarEvent, ChatMessage, Notice

CSV_HEADERS = [
    "Title",
    "Description",
    "Start Date",
    "End Date",
    "Event Type",
    "Location Type",
    "Physical Address",
    "Virtual URL",
    "Attendees Count",
    "Is Public",
]

NOTICE_STYLES = {"info": "green", "warning": "yellow", "error": "bold red"}


def sender_label(message: ChatMessage, current_user_id: Optional[str]) -> str:
    """Return the name shown next to a message."""

    if current_user_id and message.user_id == current_user_id:
        return "You"
    return message.sender_name or "Unknown User"


def format_chat_line(message: ChatMessage, current_user_id: Optional[str], mode: str = "plain") -> str:
    """Render one message as a single line for the requested mode."""

    timestamp = message.created_at.astimezone().strftime("%I:%M %p").lstrip("0")
    sender = sender_label(message, current_user_id)
    if mode == "plain":
        return f"[{timestamp}] {sender}: {message.content}"
    if mode == "markup":
        style = "bold cyan" if sender == "You" else "bold"
        return f"[dim]{timestamp}[/dim] [{style}]{escape(sender)}[/{style}] {escape(message.content)}"
    raise ValueError(f"Unsupported chat format: {mode}")


def format_event_when(event: CalendarEvent) -> str:
    start = event.start_datetime.astimezone()
    end = event.end_datetime.astimezone()
    if start.date() == end.date():
        return f"{start:%a %d %b %H:%M}-{end:%H:%M}"
    return f"{start:%a %d %b %H:%M} - {end:%a %d %b %H:%M}"


def format_event_row(event: CalendarEvent, registered: bool) -> tuple[str, str, str, str, str]:
    """Return the (when, title, type, attendees, registered) cells for a row."""

    return (
        format_event_when(event),
        event.title,
        event.event_type,
        str(event.attendees_count),
        "yes" if registered else "",
    )


def event_export_row(event: CalendarEvent) -> dict[str, Any]:
    """Return one CSV row keyed by CSV_HEADERS."""

    return {
        "Title": event.title,
        "Description": event.description or "",
        "Start Date": event.start_datetime.isoformat(),
        "End Date": event.end_datetime.isoformat(),
        "Event Type": event.event_type,
        "Location Type": event.location_type or "",
        "Physical Address": event.physical_address or "",
        "Virtual URL": event.virtual_meeting_url or "",
        "Attendees Count": event.attendees_count,
        "Is Public": "Yes" if event.is_public else "No",
    }


def format_notice(notice: Notice, mode: str = "plain") -> str:
    """Return the notice formatted for the requested mode."""

    if mode == "plain":
        if notice.description:
            return f"{notice.title}: {notice.description}"
        return notice.title
    if mode == "markup":
        style = NOTICE_STYLES.get(notice.level, "bold")
        body = f"[{style}]{escape(notice.title)}[/{style}]"
        if notice.description:
            body = f"{body} {escape(notice.description)}"
        return body
    raise ValueError(f"Unsupported notice format: {mode}")
