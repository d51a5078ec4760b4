"""UDP multicast transport for sensor readings.

Readings travel as single datagrams to a fixed multicast group.  There is
no acknowledgement and no retry: a lost datagram is never observed by any
listener, which is acceptable because readings are periodic and the next
one supersedes it.

The receiving side never blocks in :meth:`MulticastReceiver.try_receive`;
"would block" is reported as ``None`` while real I/O failures surface as
:class:`ReadError` so the caller can log them and carry on.
"""

from __future__ import annotations

import ipaddress
import logging
import socket
import struct
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Callable, Mapping, Optional, Tuple

from ..protocol.codec import MAX_DATAGRAM_SIZE, DataReading, Reading, encode
from ._socket_poll import wait_for_read_ready

__all__ = [
    "BindError",
    "DEFAULT_ENDPOINT",
    "DEFAULT_GROUP",
    "DEFAULT_PORT",
    "MulticastEndpoint",
    "MulticastReceiver",
    "MulticastSender",
    "ReadError",
    "TransportError",
]


logger = logging.getLogger(__name__)

DEFAULT_GROUP = "239.0.0.1"
DEFAULT_PORT = 5000

Address = Tuple[str, int]
SocketFactory = Callable[[], socket.socket]


class TransportError(OSError):
    """Base class for multicast transport failures."""


class BindError(TransportError):
    """The receiving socket could not be bound or could not join the group."""

    def __init__(self, message: str, *, stage: str, endpoint: "MulticastEndpoint") -> None:
        super().__init__(message)
        self.stage = stage
        self.endpoint = endpoint


class ReadError(TransportError):
    """A bound socket failed with something other than "would block"."""


@dataclass(frozen=True)
class MulticastEndpoint:
    """Multicast group address and UDP port shared by producer and listeners."""

    group: str = DEFAULT_GROUP
    port: int = DEFAULT_PORT

    def __post_init__(self) -> None:
        try:
            address = ipaddress.IPv4Address(self.group)
        except ipaddress.AddressValueError as exc:
            raise ValueError(f"invalid IPv4 multicast group: {self.group!r}") from exc
        if not address.is_multicast:
            raise ValueError(f"{self.group} is not a multicast address")
        port = int(self.port)
        if not 0 <= port <= 0xFFFF:
            raise ValueError(f"port out of range: {self.port}")
        object.__setattr__(self, "port", port)

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "MulticastEndpoint":
        """Build an endpoint from the ``multicast`` configuration table."""

        section = dict(config or {})
        return cls(
            group=str(section.get("group", DEFAULT_GROUP)),
            port=int(section.get("port", DEFAULT_PORT)),
        )

    def __str__(self) -> str:
        return f"{self.group}:{self.port}"


DEFAULT_ENDPOINT = MulticastEndpoint()


def _udp_socket() -> socket.socket:
    return socket.socket(socket.AF_INET, socket.SOCK_DGRAM, socket.IPPROTO_UDP)


def _membership_request(group: str) -> bytes:
    return struct.pack("=4sl", socket.inet_aton(group), socket.INADDR_ANY)


class MulticastReceiver:
    """Listener bound to the wildcard address and joined to the group."""

    def __init__(
        self,
        endpoint: MulticastEndpoint = DEFAULT_ENDPOINT,
        *,
        socket_factory: Optional[SocketFactory] = None,
    ) -> None:
        self._endpoint = endpoint
        self._socket_factory = socket_factory or _udp_socket
        self._socket: Optional[socket.socket] = None
        self._address: Address = ("", endpoint.port)
        self._joined = False

    @property
    def endpoint(self) -> MulticastEndpoint:
        return self._endpoint

    @property
    def address(self) -> Address:
        return self._address

    @property
    def bound(self) -> bool:
        return self._socket is not None

    def bind(self) -> Address:
        """Open the socket, bind ``("", port)`` and join the group.

        Raises
        ------
        BindError
            When the socket cannot be created, bound or joined.  The partial
            socket is closed before raising.
        """

        if self._socket is not None:
            return self._address
        endpoint = self._endpoint
        try:
            sock = self._socket_factory()
        except OSError as exc:
            raise BindError(
                f"Couldn't open socket: {exc}", stage="socket", endpoint=endpoint
            ) from exc
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind(("", endpoint.port))
        except OSError as exc:
            sock.close()
            raise BindError(
                f"Couldn't bind port {endpoint.port}: {exc}",
                stage="bind",
                endpoint=endpoint,
            ) from exc
        try:
            sock.setsockopt(
                socket.IPPROTO_IP,
                socket.IP_ADD_MEMBERSHIP,
                _membership_request(endpoint.group),
            )
        except OSError as exc:
            sock.close()
            raise BindError(
                f"Couldn't join multicast group {endpoint.group}: {exc}",
                stage="join",
                endpoint=endpoint,
            ) from exc
        sock.setblocking(False)
        host, port = sock.getsockname()[:2]
        self._socket = sock
        self._address = (host, port)
        self._joined = True
        return self._address

    def try_receive(self) -> Optional[Tuple[bytes, Address]]:
        """Return one pending datagram and its sender, or ``None``.

        Raises
        ------
        ReadError
            When the socket reports an error other than "would block".
        """

        sock = self._socket
        if sock is None:
            raise RuntimeError("MulticastReceiver is not bound")
        try:
            payload, source = sock.recvfrom(MAX_DATAGRAM_SIZE)
        except BlockingIOError:
            return None
        except OSError as exc:
            raise ReadError(f"Error reading from {self._endpoint}: {exc}") from exc
        return payload, (source[0], source[1])

    def receive(self, timeout: Optional[float] = None) -> Optional[Tuple[bytes, Address]]:
        """Wait up to ``timeout`` seconds for a datagram."""

        sock = self._socket
        if sock is None:
            raise RuntimeError("MulticastReceiver is not bound")
        if timeout is not None and timeout <= 0.0:
            return self.try_receive()
        if not wait_for_read_ready(sock, timeout=timeout):
            return None
        return self.try_receive()

    def close(self) -> None:
        sock = self._socket
        if sock is None:
            return
        self._socket = None
        if self._joined:
            self._joined = False
            try:
                sock.setsockopt(
                    socket.IPPROTO_IP,
                    socket.IP_DROP_MEMBERSHIP,
                    _membership_request(self._endpoint.group),
                )
            except OSError as exc:
                logger.debug(
                    "Multicast group leave failed.",
                    extra={
                        "event": "multicast.leave_failed",
                        "group": self._endpoint.group,
                        "error": str(exc),
                    },
                )
        sock.close()

    def __enter__(self) -> "MulticastReceiver":
        self.bind()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


class MulticastSender:
    """Producer side: one datagram per reading, fire and forget."""

    def __init__(
        self,
        endpoint: MulticastEndpoint = DEFAULT_ENDPOINT,
        *,
        ttl: int = 1,
        loopback: bool = True,
        socket_factory: Optional[SocketFactory] = None,
    ) -> None:
        self._endpoint = endpoint
        self._socket = (socket_factory or _udp_socket)()
        self._socket.setsockopt(socket.IPPROTO_IP, socket.IP_MULTICAST_TTL, int(ttl))
        self._socket.setsockopt(
            socket.IPPROTO_IP, socket.IP_MULTICAST_LOOP, 1 if loopback else 0
        )
        self._sent = 0

    @property
    def endpoint(self) -> MulticastEndpoint:
        return self._endpoint

    @property
    def sent(self) -> int:
        return self._sent

    def send(self, reading: Reading | DataReading) -> int:
        return self.send_payload(encode(reading))

    def send_payload(self, payload: bytes) -> int:
        if len(payload) > MAX_DATAGRAM_SIZE:
            raise ValueError(
                f"payload of {len(payload)} bytes exceeds the {MAX_DATAGRAM_SIZE} byte datagram limit"
            )
        written = self._socket.sendto(payload, (self._endpoint.group, self._endpoint.port))
        self._sent += 1
        return written

    def close(self) -> None:
        self._socket.close()

    def __enter__(self) -> "MulticastSender":
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()
