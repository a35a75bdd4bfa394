"""In-memory shared store for users and script data.

Nothing here is persisted.  A storage integration can subscribe to the
``close`` event and feed saved data back with :meth:`Brain.merge_data`, which
emits ``loaded``.
"""

from __future__ import annotations

from typing import Any

from loguru import logger

from herald.core.events import EventEmitter
from herald.core.message import User


class Brain(EventEmitter):
    """Key/value store plus the user directory."""

    def __init__(self) -> None:
        super().__init__()
        self.data: dict[str, Any] = {"users": {}, "_private": {}}

    # ── Key/value ────────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        return self.data["_private"].get(key, default)

    def set(self, key: str, value: Any) -> Brain:
        self.data["_private"][key] = value
        return self

    def remove(self, key: str) -> Brain:
        self.data["_private"].pop(key, None)
        return self

    async def merge_data(self, data: dict[str, Any] | None) -> None:
        """Merge previously stored ``data`` and announce ``loaded``."""
        for key, value in (data or {}).items():
            if key == "users" and isinstance(value, dict):
                for user_id, user in value.items():
                    self.data["users"][str(user_id)] = user if isinstance(user, User) else User(**user)
            else:
                self.data[key] = value
        await self.emit("loaded", self.data)

    async def close(self) -> None:
        logger.debug("Brain closing")
        await self.emit("close")

    # ── Users ────────────────────────────────────────────────────────

    def users(self) -> dict[str, User]:
        return self.data["users"]

    def user_for_id(self, user_id: str | int, **fields: Any) -> User:
        """Return the user for ``user_id``, creating or refreshing it from ``fields``.

        When ``fields`` name a different ``room`` than the stored user, the
        stored entry is replaced, matching how adapters report users that
        moved rooms.
        """
        key = str(user_id)
        user = self.data["users"].get(key)
        room = fields.get("room")
        if user is None or (room and room != user.room):
            name = str(fields.pop("name", "") or "")
            room = fields.pop("room", None)
            user = User(id=key, name=name, room=room, fields=fields)
            self.data["users"][key] = user
        return user

    def user_for_name(self, name: str) -> User | None:
        lowered = name.lower()
        for user in self.data["users"].values():
            if user.name.lower() == lowered:
                return user
        return None

    def users_for_raw_fuzzy_name(self, fuzzy_name: str) -> list[User]:
        lowered = fuzzy_name.lower()
        return [u for u in self.data["users"].values() if u.name.lower().startswith(lowered)]

    def users_for_fuzzy_name(self, fuzzy_name: str) -> list[User]:
        """Users whose name starts with ``fuzzy_name``; an exact match wins alone."""
        matched = self.users_for_raw_fuzzy_name(fuzzy_name)
        lowered = fuzzy_name.lower()
        exact = [u for u in matched if u.name.lower() == lowered]
        return exact or matched
