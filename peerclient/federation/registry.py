"""Coordinator federation and base endpoint resolution."""

import logging

from peerclient.config.schema import CoordinatorConfig, Network
from peerclient.errors import FederationError

logger = logging.getLogger(__name__)


class CoordinatorRegistry:
    """The static set of known coordinators, loaded once at startup."""

    def __init__(self, coordinators: list[CoordinatorConfig]):
        if not coordinators:
            raise FederationError("Federation is empty")
        self._coordinators = list(coordinators)

    def __len__(self) -> int:
        return len(self._coordinators)

    def __iter__(self):
        return iter(self._coordinators)

    def get(self, index: int) -> CoordinatorConfig:
        if not 0 <= index < len(self._coordinators):
            raise FederationError(
                f"Coordinator index {index} out of range (0..{len(self._coordinators) - 1})"
            )
        return self._coordinators[index]

    def find(self, alias: str) -> int:
        """Index of the coordinator with the given alias (case-insensitive)."""
        for i, c in enumerate(self._coordinators):
            if c.alias.lower() == alias.lower():
                return i
        raise FederationError(f"Unknown coordinator: {alias}")

    def resolve_base_url(
        self,
        network: Network,
        active_index: int,
        onion_capable: bool,
        origin: str | None = None,
    ) -> str:
        """Pick the single base endpoint in effect.

        Onion-capable hosts use the coordinator's onion address. Otherwise a
        client served from a browsing origin talks back to that origin, and a
        specialized host without onion routing uses the clearnet address.
        """
        coordinator = self.get(active_index)
        if onion_capable:
            endpoint = coordinator.onion(network)
            kind = "onion"
        elif origin:
            endpoint = origin
            kind = "origin"
        else:
            endpoint = coordinator.clearnet(network)
            kind = "clearnet"

        if not endpoint:
            raise FederationError(
                f"Coordinator {coordinator.alias} has no {kind} endpoint for {network}"
            )
        base_url = _with_scheme(endpoint).rstrip("/")
        logger.debug(
            "Resolved %s %s endpoint for %s: %s", network, kind, coordinator.alias, base_url
        )
        return base_url


def _with_scheme(endpoint: str) -> str:
    if "://" in endpoint:
        return endpoint
    return f"http://{endpoint}"
