"""Chat rooms: the live message view and the room directory."""

from __future__ import annotations

import logging
from typing import Optional

from clubhub.core.errors import GatewayError, MutationFailure, RecordNotFound, RecordValidationError
from clubhub.core.live_collection import Listener, LiveCollection
from clubhub.core.models import ChatMessage, ChatRoom, Filter, Notice, Profile, Query
from clubhub.core.ports import GatewayPort, NoticePort
from clubhub.core.scopes import room_scope

LOGGER = logging.getLogger(__name__)


class ChatRoomSession:
    """Binds one chat room's live messages to user actions.

    Sending never appends locally: a sent message becomes visible only when
    it comes back through the room's change channel.
    """

    def __init__(
        self,
        gateway: GatewayPort,
        notices: NoticePort,
        user_id: Optional[str],
        on_change: Optional[Listener] = None,
    ) -> None:
        self._gateway = gateway
        self._notices = notices
        self._user_id = user_id
        self.live = LiveCollection(gateway, notices, label="chat messages", on_change=on_change)
        self.sending = False

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def room_id(self) -> Optional[str]:
        scope = self.live.scope
        return scope.value if scope is not None else None

    @property
    def messages(self) -> tuple[ChatMessage, ...]:
        return self.live.items

    async def open(self, room_id: Optional[str]) -> None:
        await self.live.mount(room_scope(room_id))

    async def close(self) -> None:
        await self.live.unmount()

    def is_own(self, message: ChatMessage) -> bool:
        return self._user_id is not None and message.user_id == self._user_id

    async def send_message(self, text: str) -> Optional[ChatMessage]:
        """Insert a message into the current room.

        Blank text is ignored. The returned row is for local reporting only.
        """

        content = text.strip()
        if not content or self.sending:
            return None
        room_id = self.room_id
        if not self._user_id:
            raise MutationFailure("send_message", "User not authenticated")
        if not room_id:
            raise MutationFailure("send_message", "No chat room is open")

        self.sending = True
        try:
            record = await self._gateway.insert_record(
                ChatMessage.TABLE,
                {"room_id": room_id, "user_id": self._user_id, "content": content},
            )
        except (GatewayError, RecordValidationError) as exc:
            LOGGER.exception("Error sending message to room %s", room_id)
            await self._notices.notify(
                Notice(
                    level="error",
                    title="Error sending message",
                    description="Your message could not be sent. Please try again.",
                )
            )
            raise MutationFailure("send_message", str(exc)) from exc
        finally:
            self.sending = False
        LOGGER.info("Message %s sent to room %s", record.id, room_id)
        return record


class ChatDirectory:
    """Room listing and management helpers (not live)."""

    def __init__(self, gateway: GatewayPort) -> None:
        self._gateway = gateway

    async def list_rooms(self) -> list[ChatRoom]:
        return await self._gateway.select(
            Query(table=ChatRoom.TABLE, order_by="created_at", ascending=False)
        )

    async def get_room(self, room_id: str) -> Optional[ChatRoom]:
        try:
            return await self._gateway.fetch_by_id(ChatRoom.TABLE, room_id)
        except RecordNotFound:
            return None

    async def room_exists(self, room_id: str) -> bool:
        return await self.get_room(room_id) is not None

    async def create_room(
        self,
        name: str,
        description: Optional[str] = None,
        is_private: bool = False,
        created_by: Optional[str] = None,
    ) -> ChatRoom:
        payload = {
            "name": name,
            "description": description,
            "is_private": is_private,
            "created_by": created_by,
            "status": "active",
        }
        room = await self._gateway.insert_record(ChatRoom.TABLE, payload)
        LOGGER.info("Created chat room %s (%s)", room.id, name)
        return room

    async def get_or_create_direct_room(self, user_a: str, user_b: str) -> ChatRoom:
        """Return the private room shared by two users, creating it if needed."""

        name_ab = f"dm_{user_a}_{user_b}"
        name_ba = f"dm_{user_b}_{user_a}"
        existing = await self._gateway.select(
            Query(
                table=ChatRoom.TABLE,
                filters=(Filter("is_private", "eq", True),),
                any_of=(Filter("name", "eq", name_ab), Filter("name", "eq", name_ba)),
            )
        )
        if existing:
            return existing[0]

        profile_a = await self._gateway.fetch_by_id(Profile.TABLE, user_a)
        profile_b = await self._gateway.fetch_by_id(Profile.TABLE, user_b)
        description = f"Private chat between {profile_a.display_name} and {profile_b.display_name}"
        return await self.create_room(name_ab, description, is_private=True, created_by=user_a)

    async def delete_room(self, room_id: str) -> None:
        # Messages reference the room, so they go first.
        await self._gateway.delete_records(ChatMessage.TABLE, {"room_id": room_id})
        await self._gateway.delete_records(ChatRoom.TABLE, {"id": room_id})
        LOGGER.info("Deleted chat room %s", room_id)
