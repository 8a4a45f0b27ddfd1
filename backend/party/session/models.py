from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from party.messaging.protocol import ConnectionProtocol


@dataclass
class Session:
    """Per-connection state outside any room.

    Lifecycle:
    - Created when the WebSocket is accepted (no name, no room)
    - ``player:register`` sets display_name
    - Creating or joining a room sets room_id; leaving clears it
    - Removed from the store when the connection closes
    """

    connection: ConnectionProtocol
    display_name: str | None = None
    room_id: str | None = None

    @property
    def connection_id(self) -> str:
        return self.connection.connection_id

    @property
    def is_registered(self) -> bool:
        return self.display_name is not None
