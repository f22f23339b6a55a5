"""
Scan input server.

Receives length-prefixed JSON scan frames from the scanner bridge over TCP
and hands the newest one to the control loop through a LatestFrameSlot.
"""

import socket
import json
import threading
import logging
from typing import Callable, Dict, List, Optional, Tuple

from pole_core.io import LatestFrameSlot
from pole_core.proto import ScanFrame
from pole_core.metrics import get_metrics

logger = logging.getLogger(__name__)

LENGTH_PREFIX_BYTES = 4


def decode_messages(buffer: bytes) -> Tuple[List[bytes], bytes]:
    """
    Split a receive buffer into complete length-prefixed payloads.

    Args:
        buffer: Bytes received so far

    Returns:
        (payloads, remaining) where remaining is an incomplete tail
    """
    payloads = []
    while len(buffer) >= LENGTH_PREFIX_BYTES:
        msg_length = int.from_bytes(buffer[:LENGTH_PREFIX_BYTES], byteorder='big')
        end = LENGTH_PREFIX_BYTES + msg_length
        if len(buffer) < end:
            break  # Incomplete, wait for more data
        payloads.append(buffer[LENGTH_PREFIX_BYTES:end])
        buffer = buffer[end:]
    return payloads, buffer


class DataReceiver:
    """TCP accept loop with one receive thread per client."""

    def __init__(self, host: str, port: int, data_callback: Callable[[Dict], None]):
        """
        Initialize receiver.

        Args:
            host: Listen address
            port: Listen port
            data_callback: Called with every decoded JSON message
        """
        self.host = host
        self.port = port
        self.data_callback = data_callback
        self.server_socket: Optional[socket.socket] = None
        self.running = False
        self.clients: List[socket.socket] = []
        self.receive_thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        """Bind, listen and start the accept thread."""
        try:
            self.server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self.server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self.server_socket.bind((self.host, self.port))
            self.server_socket.listen(5)
            self.server_socket.settimeout(1.0)
        except OSError as e:
            logger.error(f"Failed to start scan server: {e}")
            return False

        self.running = True
        self.receive_thread = threading.Thread(target=self._accept_loop, daemon=True)
        self.receive_thread.start()

        logger.info(f"Scan server listening on {self.host}:{self.port}")
        return True

    def stop(self):
        """Close all client sockets and the listening socket."""
        self.running = False

        for client in self.clients:
            try:
                client.close()
            except OSError as e:
                logger.debug(f"Error closing client socket: {e}")
        self.clients.clear()

        if self.server_socket:
            try:
                self.server_socket.close()
            except OSError as e:
                logger.debug(f"Error closing server socket: {e}")

        logger.info("Scan server stopped")

    def _accept_loop(self):
        while self.running:
            try:
                client_socket, address = self.server_socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self.running:
                    logger.error(f"Accept failed: {e}")
                continue

            logger.info(f"Scanner bridge connected: {address}")
            self.clients.append(client_socket)
            client_thread = threading.Thread(
                target=self._handle_client,
                args=(client_socket, address),
                daemon=True
            )
            client_thread.start()

    def _handle_client(self, client_socket: socket.socket, address):
        buffer = b''
        metrics = get_metrics()

        try:
            client_socket.settimeout(1.0)
            while self.running:
                try:
                    data = client_socket.recv(65536)
                except socket.timeout:
                    continue

                if not data:
                    logger.info(f"Scanner bridge disconnected: {address}")
                    break

                payloads, buffer = decode_messages(buffer + data)
                for payload in payloads:
                    try:
                        message = json.loads(payload.decode('utf-8'))
                    except (UnicodeDecodeError, json.JSONDecodeError) as e:
                        logger.warning(f"JSON decode failed: {e}")
                        metrics.increment_drop('parse_error')
                        continue
                    self.data_callback(message)

        except OSError as e:
            logger.error(f"Client connection error: {e}")
        finally:
            client_socket.close()
            if client_socket in self.clients:
                self.clients.remove(client_socket)


class ScanDataServer:
    """
    Scan frame server.

    Usage:
        server = ScanDataServer(host, port)
        server.start()
        frame = server.slot.take()
    """

    def __init__(self, host: str, port: int, slot: Optional[LatestFrameSlot] = None):
        self.slot = slot or LatestFrameSlot()
        self.metrics = get_metrics()
        self.receiver = DataReceiver(host, port, self.handle_message)

    def start(self) -> bool:
        return self.receiver.start()

    def stop(self):
        self.receiver.stop()

    def handle_message(self, message: Dict):
        """
        Validate one decoded message and store it if it is a scan.

        Messages of other types are ignored; anything that is not a JSON
        object is counted as a parse error.
        """
        if not isinstance(message, dict):
            logger.warning(f"Rejected non-object message: {type(message).__name__}")
            self.metrics.increment_drop('parse_error')
            return

        msg_type = message.get("type", "")
        if msg_type != "scan":
            logger.debug(f"Ignoring message type: {msg_type!r}")
            return

        try:
            frame = ScanFrame.from_dict(message.get("data", message))
        except ValueError as e:
            logger.warning(f"Rejected scan message: {e}")
            self.metrics.increment_drop('parse_error')
            return

        self.slot.put(frame)

    def take_frame(self) -> Optional[ScanFrame]:
        """Newest unconsumed frame, or None."""
        return self.slot.take()
