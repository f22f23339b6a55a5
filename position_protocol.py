"""
Pose and landmark publishing.

Serializes poses and landmark positions to JSON and sends them, length
prefixed, to a downstream consumer. Supports TCP and UDP.
"""

import json
import logging
import socket
import time
from typing import Iterable, Optional

from pole_core.proto import Pose, LandmarkPosition

logger = logging.getLogger(__name__)


def encode_message(message: dict) -> bytes:
    """JSON-encode a message and prepend its 4-byte big-endian length."""
    data = json.dumps(message).encode('utf-8')
    return len(data).to_bytes(4, byteorder='big') + data


class PosePublisher:
    """Pose/landmark sender."""

    def __init__(
        self,
        host: str,
        port: int,
        protocol: str = "tcp",
        reconnect_interval: float = 2.0,
        connect_timeout: float = 1.0,
        clock=time.monotonic,
    ):
        """
        Initialize publisher.

        Args:
            host: Consumer address
            port: Consumer port
            protocol: "tcp" or "udp"
            reconnect_interval: Minimum time between connection attempts (s)
            connect_timeout: TCP connect timeout (s)
            clock: Monotonic time source
        """
        self.host = host
        self.port = port
        self.protocol = protocol.lower()
        self.reconnect_interval = reconnect_interval
        self.connect_timeout = connect_timeout
        self.clock = clock
        self.socket: Optional[socket.socket] = None
        self.connected = False
        self._last_attempt: Optional[float] = None

    def connect(self) -> bool:
        """Open the socket (TCP connects immediately)."""
        self._last_attempt = self.clock()
        try:
            if self.protocol == "tcp":
                self.socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
                self.socket.settimeout(self.connect_timeout)
                self.socket.connect((self.host, self.port))
            else:
                self.socket = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        except OSError as e:
            logger.warning(f"Failed to connect to consumer {self.host}:{self.port}: {e}")
            self.disconnect()
            return False

        self.connected = True
        logger.info(f"Connected to consumer: {self.host}:{self.port}")
        return True

    def disconnect(self):
        if self.socket:
            try:
                self.socket.close()
            except OSError as e:
                logger.debug(f"Error closing publisher socket: {e}")
            self.socket = None
        self.connected = False

    def _reconnect_due(self) -> bool:
        if self._last_attempt is None:
            return True
        return self.clock() - self._last_attempt >= self.reconnect_interval

    def _send(self, message: dict) -> bool:
        if not self.connected:
            # At most one connection attempt per reconnect_interval
            if not self._reconnect_due() or not self.connect():
                return False

        try:
            if self.protocol == "tcp":
                self.socket.sendall(encode_message(message))
            else:
                self.socket.sendto(json.dumps(message).encode('utf-8'), (self.host, self.port))
        except OSError as e:
            logger.error(f"Failed to send {message.get('type')} message: {e}")
            self.disconnect()
            return False
        return True

    def publish_pose(self, pose: Pose) -> bool:
        """Send one pose message."""
        return self._send(pose.to_dict())

    def publish_landmarks(self, positions: Iterable[LandmarkPosition]) -> bool:
        """Send one message per landmark; False if any send failed."""
        ok = True
        for position in positions:
            ok = self._send(position.to_dict()) and ok
        return ok


def format_pose(pose: Pose) -> str:
    """Human-readable pose block."""
    pairs = ", ".join(f"{a}-{b}" for a, b in pose.landmark_pairs) or "none"
    return (
        f"Position:\n"
        f"  X: {pose.x:.3f} m\n"
        f"  Y: {pose.y:.3f} m\n"
        f"Heading: {pose.theta:.4f} rad\n"
        f"Pole pairs: {pairs}\n"
        f"Timestamp: {pose.timestamp:.3f}"
    )


def print_pose_standard(pose: Pose):
    """Print a pose in the standard console format."""
    print("=" * 60)
    print("           Pole Localization Result")
    print("=" * 60)
    print(format_pose(pose))
    print("=" * 60)
    print()
