"""Capabilities the hosting platform hands to the client.

The client never inspects its environment; whoever starts it decides whether
onion endpoints are reachable, which origin (if any) it is served from, and
supplies the transport, key/value store and clipboard.
"""

import sqlite3
import sys
from dataclasses import dataclass, field
from typing import Protocol, TextIO

from peerclient.api.transport import HttpTransport, Transport
from peerclient.config.schema import ClientConfig
from peerclient.storage import host_state_repo
from peerclient.storage.database import connect, run_migrations


class KeyValueStore(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def delete(self, key: str) -> None: ...


class Clipboard(Protocol):
    def copy(self, value: str) -> None: ...


class MemoryStore:
    def __init__(self, initial: dict[str, str] | None = None):
        self.data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def delete(self, key: str) -> None:
        self.data.pop(key, None)


class SqliteStore:
    """Key/value store persisted in the client's SQLite database."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn

    @classmethod
    def open(cls, db_path: str) -> "SqliteStore":
        conn = connect(db_path)
        run_migrations(conn)
        return cls(conn)

    def get(self, key: str) -> str | None:
        return host_state_repo.get_value(self.conn, key)

    def set(self, key: str, value: str) -> None:
        host_state_repo.set_value(self.conn, key, value)

    def delete(self, key: str) -> None:
        host_state_repo.delete_value(self.conn, key)

    def close(self) -> None:
        self.conn.close()


class StreamClipboard:
    """Clipboard for terminal hosts: the value is written to a stream."""

    def __init__(self, stream: TextIO | None = None):
        self.stream = stream or sys.stdout
        self.last: str | None = None

    def copy(self, value: str) -> None:
        self.last = value
        print(value, file=self.stream)


@dataclass
class HostCapabilities:
    transport: Transport
    store: KeyValueStore = field(default_factory=MemoryStore)
    clipboard: Clipboard = field(default_factory=StreamClipboard)
    onion_capable: bool = False
    origin: str | None = None


def host_from_config(config: ClientConfig, store: KeyValueStore | None = None) -> HostCapabilities:
    """Build the capabilities of a terminal host from configuration."""
    transport = HttpTransport(timeout=config.http.timeout, proxy=config.host.tor_proxy)
    return HostCapabilities(
        transport=transport,
        store=store if store is not None else SqliteStore.open(config.storage_path),
        onion_capable=config.host.onion_capable,
        origin=config.host.origin,
    )
