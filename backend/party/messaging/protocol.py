"""Transport-neutral connection interface used by the session layer."""

from abc import ABC, abstractmethod
from typing import Any

from party.messaging.encoder import decode, encode


class ConnectionProtocol(ABC):
    """
    A live client connection.

    Session and routing code only ever sees this interface, so it can be
    driven by an in-memory mock in tests.
    """

    @property
    @abstractmethod
    def connection_id(self) -> str:
        """Unique identifier for this connection; doubles as the player id."""
        ...

    @abstractmethod
    async def send_bytes(self, data: bytes) -> None: ...

    @abstractmethod
    async def receive_bytes(self) -> bytes: ...

    @abstractmethod
    async def close(self, code: int = 1000, reason: str = "") -> None: ...

    async def send_message(self, data: dict[str, Any]) -> None:
        """Send one MessagePack-encoded map."""
        await self.send_bytes(encode(data))

    async def receive_message(self) -> dict[str, Any]:
        """Receive one map. Raises DecodeError for malformed frames."""
        raw = await self.receive_bytes()
        return decode(raw)
