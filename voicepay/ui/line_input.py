"""Cancellable line input from the terminal."""

import asyncio
import logging
import select
import sys
import threading
from typing import Optional, TextIO

logger = logging.getLogger(__name__)

POLL_SECONDS = 0.1


def _input_ready(stream: TextIO) -> bool:
    if sys.platform == "win32":
        import msvcrt
        if msvcrt.kbhit():
            return True
        threading.Event().wait(POLL_SECONDS)
        return False
    return bool(select.select([stream], [], [], POLL_SECONDS)[0])


def _wait_for_line(stop: threading.Event, stream: TextIO) -> Optional[str]:
    while not stop.is_set():
        if _input_ready(stream):
            line = stream.readline()
            if not line:
                logger.debug("End of input reached")
                return None
            return line.rstrip("\r\n")
    return None


async def read_line(stream: Optional[TextIO] = None) -> Optional[str]:
    """Wait for one line of input without holding the terminal after cancellation.

    The blocking read only starts once input is available, so a cancelled
    wait never consumes a line meant for a later prompt.

    Returns:
        The line without its newline, or None at end of input
    """
    stop = threading.Event()
    reader = asyncio.get_running_loop().run_in_executor(None, _wait_for_line, stop, stream or sys.stdin)
    try:
        return await asyncio.shield(reader)
    finally:
        stop.set()
        if not reader.done():
            # The poll loop exits within POLL_SECONDS once stopped
            await asyncio.wait([reader])
            if reader.exception() is None and reader.result() is not None:
                logger.debug("Discarded a line read after the wait was cancelled")
