"""Fan-out of change events to the websocket ``updates`` group."""
from __future__ import annotations

import logging
from typing import Any

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer

from clinicadmin.realtime.consumers import UPDATES_GROUP

logger = logging.getLogger(__name__)


def broadcast(event_type: str, payload: dict[str, Any]) -> bool:
    """Send ``payload`` to every connected admin screen.

    Returns False when no channel layer is configured or the layer is
    unreachable; a failed push never fails the write that caused it.
    """
    channel_layer = get_channel_layer()
    if channel_layer is None:
        return False
    try:
        async_to_sync(channel_layer.group_send)(UPDATES_GROUP, {'type': event_type, **payload})
    except (OSError, RuntimeError) as exc:
        logger.warning("broadcast of %s failed: %s", event_type, exc)
        return False
    return True
