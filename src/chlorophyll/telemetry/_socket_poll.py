"""Readiness probe for listeners that are allowed to wait on the socket."""

from __future__ import annotations

import select
import socket
import time
from typing import Optional

__all__ = ["wait_for_read_ready"]


def wait_for_read_ready(
    sock: socket.socket,
    *,
    timeout: Optional[float],
    deadline: Optional[float] = None,
) -> bool:
    """Return ``True`` if ``sock`` becomes readable before ``deadline``.

    Parameters
    ----------
    sock:
        The non-blocking UDP socket to probe.
    timeout:
        Maximum wait for this probe.  ``None`` waits indefinitely, ``0``
        asks the caller to retry immediately without blocking.
    deadline:
        Optional monotonic timestamp after which waiting should stop.
    """

    if timeout is not None and timeout <= 0.0:
        return True

    wait_time = timeout
    if deadline is not None:
        remaining = deadline - time.monotonic()
        if remaining <= 0.0:
            return False
        wait_time = remaining if wait_time is None else min(wait_time, remaining)

    try:
        readable, _, _ = select.select([sock], [], [], wait_time)
    except (OSError, ValueError):
        return False
    return bool(readable)
