"""Frame transport interface.

This is the (small) contract a byte-moving layer follows so that the
channel engine never touches sockets itself. A transport accepts complete
frames for writing and hands every inbound frame to its connection.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Sequence


class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportClosed(TransportError):
    """The transport is no longer able to carry frames."""


class FrameTransport(ABC):
    """Minimal contract for a frame-level transport."""

    @abstractmethod
    def start(self, connection) -> None:
        """Begin delivering inbound frames to ``connection.route_frame``,
        passing the channel number and the decoded frame.

        Frames must be delivered from a single thread, one at a time, in
        the order they arrived. When the transport fails or reaches end of
        stream it calls ``connection.transport_lost(error)`` exactly once.
        """

    @abstractmethod
    def send(self, channel_number: int, frames: Sequence) -> None:
        """Write *frames* contiguously; frames from concurrent callers
        must never interleave."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection."""

    @property
    def is_open(self) -> bool:
        """Whether the transport can currently carry frames."""
        return False
