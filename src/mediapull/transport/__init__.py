"""
Transports for remote byte streams.

Two interchangeable variants share the BaseTransport interface:
SftpTransport (SSH file subchannel) and HttpTransport (HTTP range requests).
"""

from mediapull.transport.base import BaseTransport, RemoteStream, TransportState
from mediapull.transport.http import HttpTransport
from mediapull.transport.sftp import SftpTransport

__all__ = [
    "BaseTransport",
    "RemoteStream",
    "TransportState",
    "HttpTransport",
    "SftpTransport",
]
