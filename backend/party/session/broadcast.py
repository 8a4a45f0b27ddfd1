"""Fire-and-forget delivery helpers. A dead connection never affects other recipients."""

from __future__ import annotations

import contextlib
from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from party.messaging.protocol import ConnectionProtocol


async def send_safely(connection: ConnectionProtocol, message: dict[str, Any]) -> None:
    with contextlib.suppress(RuntimeError, OSError):
        await connection.send_message(message)


async def broadcast_to_connections(connections: Iterable[ConnectionProtocol], message: dict[str, Any]) -> None:
    """Send one message to many connections.

    Callers pass a snapshot (list) so concurrent joins or leaves cannot
    mutate the collection while we yield on send.
    """
    for connection in connections:
        await send_safely(connection, message)
