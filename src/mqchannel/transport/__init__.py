"""Transport layer implementations."""

from .base import (
    FrameTransport,
    TransportError,
    TransportClosed,
)
from .stream import StreamTransport
