"""Socket transport: AMQP frames over any connected stream socket.

Frame encoding and decoding are handled by :mod:`pika.frame`; this module
only moves bytes. Connection negotiation (protocol header, Connection.Start
and friends) is expected to have happened already.
"""

from __future__ import annotations

import logging
import socket as pysocket
import threading
from typing import Optional, Sequence

import pika.exceptions
import pika.frame

from .base import FrameTransport, TransportClosed


logger = logging.getLogger(__name__)


class StreamTransport(FrameTransport):
    """Carry frames over the connected socket *sock*. A daemon thread reads
    and decodes inbound frames and routes them to the connection."""

    def __init__(self, sock: pysocket.socket, read_size: int = 65536):
        self.socket = sock
        self.read_size = read_size

        self._connection = None
        self._thread: Optional[threading.Thread] = None
        self._send_lock = threading.Lock()
        self._open = True
        self._closed = False
        self._lost = False
        self._lost_lock = threading.Lock()

    @property
    def is_open(self) -> bool:
        return self._open

    def start(self, connection) -> None:
        if self._thread is not None:
            raise RuntimeError("transport already started")

        self._connection = connection
        self._thread = threading.Thread(
            target=self.run, name="mqchannel-reader", daemon=True
        )
        self._thread.start()

    def send(self, channel_number: int, frames: Sequence) -> None:
        data = b"".join(frame_value.marshal() for frame_value in frames)

        with self._send_lock:
            if not self._open:
                raise TransportClosed("transport is closed")

            try:
                self.socket.sendall(data)
            except OSError as error:
                # Wake the reader so the loss is reported through the usual path.
                self._shutdown_socket()
                raise TransportClosed(f"send failed: {error}") from error

    def close(self) -> None:
        with self._send_lock:
            if self._closed:
                return
            self._closed = True
            self._open = False

        self._shutdown_socket()
        self.socket.close()

        reader = self._thread
        if reader is not None and reader is not threading.current_thread():
            reader.join(timeout=5)

    def run(self) -> None:
        """Reader loop; runs on the transport's own thread."""

        buffer = b""
        error: Optional[BaseException] = None

        while True:
            try:
                chunk = self.socket.recv(self.read_size)
            except OSError as exc:
                error = exc
                break

            if chunk == b"":
                error = TransportClosed("connection closed by peer")
                break

            buffer += chunk

            try:
                buffer = self._consume(buffer)
            except pika.exceptions.InvalidFrameError as exc:
                logger.error("undecodable frame from peer: %s", exc)
                error = exc
                break

        self._open = False
        self._report_lost(error)

    def _consume(self, buffer: bytes) -> bytes:
        """Route every complete frame in *buffer*; return the remainder."""

        while buffer:
            consumed, frame_value = pika.frame.decode_frame(buffer)

            if frame_value is None:
                break

            buffer = buffer[consumed:]

            try:
                channel_number = getattr(frame_value, "channel_number", 0)
                self._connection.route_frame(channel_number, frame_value)
            except Exception:
                logger.exception("error routing %r", frame_value)

        return buffer

    def _report_lost(self, error: Optional[BaseException]) -> None:
        with self._lost_lock:
            if self._lost:
                return
            self._lost = True

        logger.debug("transport lost: %s", error)
        self._connection.transport_lost(error)

    def _shutdown_socket(self) -> None:
        try:
            self.socket.shutdown(pysocket.SHUT_RDWR)
        except OSError:
            pass
