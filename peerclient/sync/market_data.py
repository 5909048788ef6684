"""Order book, limits and coordinator info for the active coordinator."""

import logging

from peerclient.api.coordinator_client import CoordinatorClient
from peerclient.errors import TransportError
from peerclient.models.info import Info, Version, VersionCheck, check_version

logger = logging.getLogger(__name__)


class MarketDataService:
    def __init__(self, client_version: str, client: CoordinatorClient | None = None):
        self.client_version = Version.parse(client_version)
        self.client = client
        self.reset()

    def set_client(self, client: CoordinatorClient | None) -> None:
        self.client = client
        self.reset()

    def reset(self) -> None:
        self.book: list[dict] = []
        self.limits: dict = {}
        self.info: Info | None = None
        self.version_check: VersionCheck | None = None
        self.book_loading = False
        self.limits_loading = False
        self.info_loading = False
        self.message: str | None = None

    def load_all(self) -> None:
        self.load_book()
        self.load_limits()

    def load_book(self) -> list[dict]:
        client = self.client
        if client is None:
            return self.book
        self.book_loading = True
        try:
            book = client.get_book()
        except TransportError as e:
            if client is self.client:
                self.book_loading = False
                self.message = str(e)
            return self.book
        if client is not self.client:
            return self.book
        self.book = book
        self.book_loading = False
        logger.info("Book: %d open orders at %s", len(book), client.base_url)
        return self.book

    def load_limits(self) -> dict:
        client = self.client
        if client is None:
            return self.limits
        self.limits_loading = True
        try:
            limits = client.get_limits()
        except TransportError as e:
            if client is self.client:
                self.limits_loading = False
                self.message = str(e)
            return self.limits
        if client is not self.client:
            return self.limits
        self.limits = limits
        self.limits_loading = False
        return self.limits

    def load_info(self) -> Info | None:
        """Fetch coordinator info and compare its version with ours."""
        client = self.client
        if client is None:
            return self.info
        self.info_loading = True
        try:
            data = client.get_info()
        except TransportError as e:
            if client is self.client:
                self.info_loading = False
                self.message = str(e)
            return self.info
        if client is not self.client:
            return self.info

        self.info = Info.from_payload(data)
        self.info_loading = False
        if self.info.version is not None:
            self.version_check = check_version(self.info.version, self.client_version)
            if self.version_check.update_available:
                logger.warning(
                    "Client update available: coordinator %s, client %s",
                    self.version_check.coordinator_version,
                    self.version_check.client_version,
                )
        return self.info
