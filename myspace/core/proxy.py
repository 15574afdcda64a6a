"""TCP forwarding proxy for the loopback-only web UI."""

import asyncio
from typing import Optional

import structlog

from ..exceptions import ForwardPortUnavailableError

logger = structlog.get_logger()

CHUNK_SIZE = 64 * 1024


class ForwardingProxy:
    """Relays connections from ``listen_port`` to ``target_host:target_port``.

    Each accepted client gets its own upstream connection and the two are
    spliced together. A failure on one side of a pair aborts the other side
    of that pair only; the listener keeps accepting.
    """

    def __init__(
        self,
        listen_port: int,
        target_port: int,
        listen_host: Optional[str] = None,
        target_host: str = "localhost",
    ) -> None:
        self.listen_port = listen_port
        self.target_port = target_port
        self.listen_host = listen_host
        self.target_host = target_host
        self.active_connections = 0
        self._server: Optional[asyncio.AbstractServer] = None

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually listened on (differs from ``listen_port`` when it is 0)."""
        if self._server is None or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> asyncio.AbstractServer:
        """Open the listening socket.

        Raises:
            ForwardPortUnavailableError: If the listen port cannot be bound
        """
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, self.listen_host, self.listen_port
            )
        except OSError as e:
            raise ForwardPortUnavailableError(
                f"cannot listen on port {self.listen_port}: {e.strerror or e}"
            ) from e
        logger.info(
            "Forwarding proxy listening",
            listen_port=self.bound_port,
            target=f"{self.target_host}:{self.target_port}",
        )
        return self._server

    async def close(self) -> None:
        """Stop accepting connections."""
        if self._server is not None:
            self._server.close()
            await self._server.wait_closed()
            self._server = None

    async def _handle_connection(
        self, client_reader: asyncio.StreamReader, client_writer: asyncio.StreamWriter
    ) -> None:
        peer = client_writer.get_extra_info("peername")
        try:
            upstream_reader, upstream_writer = await asyncio.open_connection(
                self.target_host, self.target_port
            )
        except OSError as e:
            logger.warning(
                "Upstream connection failed",
                peer=peer,
                target=f"{self.target_host}:{self.target_port}",
                error=str(e),
            )
            client_writer.close()
            return

        self.active_connections += 1
        logger.debug("Relay opened", peer=peer, active=self.active_connections)
        try:
            await asyncio.gather(
                self._pipe(client_reader, upstream_writer, client_writer),
                self._pipe(upstream_reader, client_writer, upstream_writer),
            )
        finally:
            self.active_connections -= 1
            for writer in (client_writer, upstream_writer):
                writer.close()
            logger.debug("Relay closed", peer=peer, active=self.active_connections)

    @staticmethod
    async def _pipe(
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        source_writer: asyncio.StreamWriter,
    ) -> None:
        """Copy bytes from reader to writer until EOF.

        EOF is forwarded as a half-close. On error both transports of the
        pair are aborted so the other direction ends too.
        """
        try:
            while True:
                data = await reader.read(CHUNK_SIZE)
                if not data:
                    break
                writer.write(data)
                await writer.drain()
            if writer.can_write_eof() and not writer.is_closing():
                writer.write_eof()
        except (ConnectionError, OSError) as e:
            logger.debug("Relay side failed", error=str(e))
            writer.transport.abort()
            source_writer.transport.abort()
