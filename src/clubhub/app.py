"""Application entry point for clubhub."""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from art import tprint
from rich.console import Console

from clubhub import settings
from clubhub.adapters.formatting import format_chat_line, format_event_row
from clubhub.adapters.log_notices import LoggingNoticeSink
from clubhub.client import Credentials, build_gateway, load_credentials
from clubhub.core.calendar import CalendarSession
from clubhub.core.chat import ChatDirectory, ChatRoomSession
from clubhub.core.errors import ClubHubError, MutationFailure
from clubhub.frontend.validators import parse_month, parse_room_id
from clubhub.log_setup import configure_logging

NAME = "CLUBHUB"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _gateway(credentials: Credentials):
    return build_gateway(credentials, settings.HTTP, settings.REALTIME)


async def _list_rooms(credentials: Credentials, console: Console) -> None:
    gateway = _gateway(credentials)
    try:
        rooms = await ChatDirectory(gateway).list_rooms()
    finally:
        await gateway.aclose()

    if not rooms:
        console.print("No chat rooms yet.")
        return
    for index, room in enumerate(rooms, start=1):
        visibility = "private" if room.is_private else "public"
        console.print(f"{index}. {room.name} | {visibility} | {room.id}")


async def _watch_room(credentials: Credentials, room_id: str, console: Console) -> None:
    """Print the room's messages, then every reconciled arrival, until interrupted."""

    gateway = _gateway(credentials)
    notices = LoggingNoticeSink(console)
    printed: set[str] = set()

    def _render(items) -> None:
        # Collections only grow by appending, so new ids are new lines.
        for message in items:
            if message.id in printed:
                continue
            printed.add(message.id)
            console.print(format_chat_line(message, credentials.user_id, mode="markup"))

    session = ChatRoomSession(gateway, notices, credentials.user_id, on_change=_render)
    try:
        await session.open(room_id)
        if not session.messages and not session.live.error:
            console.print("No messages yet. Start the conversation!")
        console.print(f"[dim]Listening on room {room_id}. Press Ctrl+C to stop.[/dim]")
        await asyncio.Event().wait()
    finally:
        await session.close()
        await gateway.aclose()


async def _send(credentials: Credentials, room_id: str, text: str, console: Console) -> None:
    gateway = _gateway(credentials)
    session = ChatRoomSession(gateway, LoggingNoticeSink(console), credentials.user_id)
    try:
        await session.open(room_id)
        record = await session.send_message(text)
    finally:
        await session.close()
        await gateway.aclose()
    if record is None:
        console.print("Nothing to send.")
        return
    console.print(f"Sent message {record.id}")


async def _print_calendar(credentials: Credentials, year: int, month: int, console: Console) -> None:
    gateway = _gateway(credentials)
    session = CalendarSession(gateway, LoggingNoticeSink(console), credentials.user_id)
    try:
        await session.open_month(year, month)
        events = session.calendar_events
        registered = session.registered_event_ids()
    finally:
        await session.close()
        await gateway.aclose()

    console.print(f"[bold]Events for {year}-{month:02d}[/bold]")
    if not events:
        console.print("No events this month.")
        return
    for event in events:
        when, title, event_type, attendees, marker = format_event_row(event, event.id in registered)
        suffix = " [green](registered)[/green]" if marker else ""
        console.print(f"{when} | {title} | {event_type} | {attendees} attending{suffix}")


def _run_tui(credentials: Credentials, room_id: Optional[str]) -> None:
    from clubhub.frontend.app import ClubHubApp

    gateway = _gateway(credentials)
    ClubHubApp(gateway=gateway, user_id=credentials.user_id, room_id=room_id).run()


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="clubhub")
    subparsers = parser.add_subparsers(dest="command")

    tui_parser = subparsers.add_parser("tui", help="Launch the terminal UI")
    tui_parser.add_argument("--room", help="Chat room to open on start")
    subparsers.add_parser("rooms", help="List chat rooms")
    watch_parser = subparsers.add_parser("watch", help="Follow a chat room live")
    watch_parser.add_argument("room_id")
    send_parser = subparsers.add_parser("send", help="Send one message to a chat room")
    send_parser.add_argument("room_id")
    send_parser.add_argument("text")
    calendar_parser = subparsers.add_parser("calendar", help="Print a month of events")
    calendar_parser.add_argument("--month", help="Month as YYYY-MM (default: current month)")

    args = parser.parse_args(argv)
    configure_logging(settings.LOGGING, settings.PROJECT_ROOT)
    logger = logging.getLogger(__name__)
    credentials = load_credentials()
    console = Console()

    room_arg = getattr(args, "room_id", None) or getattr(args, "room", None)
    room_id = None
    if room_arg:
        room_info = parse_room_id(room_arg)
        if room_info.error:
            parser.error(room_info.error)
        room_id = room_info.normalized

    try:
        if args.command == "rooms":
            asyncio.run(_list_rooms(credentials, console))
        elif args.command == "watch":
            _print_banner()
            asyncio.run(_watch_room(credentials, room_id, console))
        elif args.command == "send":
            asyncio.run(_send(credentials, room_id, args.text, console))
        elif args.command == "calendar":
            month_info = parse_month(args.month)
            if month_info.error:
                parser.error(month_info.error)
            asyncio.run(_print_calendar(credentials, month_info.year, month_info.month, console))
        else:
            _print_banner()
            _run_tui(credentials, room_id or settings.DEFAULT_ROOM)
    except KeyboardInterrupt:
        logger.info("Interrupted")
    except MutationFailure as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise SystemExit(1) from exc
    except ClubHubError as exc:
        logger.exception("clubhub failed")
        console.print(f"[bold red]{exc}[/bold red]")
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
