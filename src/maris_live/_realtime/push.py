# Area: Realtime
"""
maris_live._realtime.push - Best-effort packet sending
======================================================

Wraps the push channel so a failing send is logged and never reaches
the state change it reports.
"""

import logging
from typing import Any, List, Optional

from .._shared.interfaces import PushChannel
from .._shared.logging_config import log_best_effort_failure

logger = logging.getLogger("maris_live.realtime.push")


def as_connection_list(connections: Any) -> List[Any]:
    if connections is None:
        return []
    if isinstance(connections, (list, tuple)):
        return list(connections)
    return [connections]


def push_packet(
    channel: PushChannel,
    packet_type: int,
    payload: dict,
    user_id: Optional[str] = None,
    connections: Any = None,
) -> None:
    """
    Send a packet to explicit connections, or to all of a user's.

    Each send is attempted independently; failures are logged.
    """
    targets = as_connection_list(connections)
    if not targets:
        try:
            channel.send_to_user(int(packet_type), payload, user_id)
        except Exception as e:
            log_best_effort_failure(logger, f"Push {packet_type!r} to user", e,
                                    user_id=user_id)
        return
    for connection in targets:
        try:
            channel.send_to_connection(int(packet_type), payload, connection)
        except Exception as e:
            log_best_effort_failure(logger, f"Push {packet_type!r} to connection", e)
