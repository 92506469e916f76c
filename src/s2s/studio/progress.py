"""Progress channel from a long-running call back to the store."""

import logging
from typing import Callable

logger = logging.getLogger(__name__)


class ProgressChannel:
    """One-way status channel that forwards messages until it is closed.

    Use it as a context manager around the call so nothing is delivered once
    the call has resolved or raised.
    """

    def __init__(self, sink: Callable[[str], None]) -> None:
        self._sink = sink
        self._open = True

    @property
    def closed(self) -> bool:
        return not self._open

    def __call__(self, message: str) -> None:
        if not self._open:
            logger.debug(f"Dropping progress after close: {message}")
            return
        self._sink(message)

    def close(self) -> None:
        self._open = False

    def __enter__(self) -> "ProgressChannel":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
