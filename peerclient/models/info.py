"""Coordinator info and client/coordinator version comparison."""

from dataclasses import dataclass, field


@dataclass(frozen=True)
class Version:
    major: int
    minor: int
    patch: int

    @classmethod
    def parse(cls, text: str) -> "Version":
        parts = text.strip().lstrip("v").split(".")
        major, minor, patch = (int(p) for p in (parts + ["0", "0", "0"])[:3])
        return cls(major, minor, patch)

    def __str__(self) -> str:
        return f"v{self.major}.{self.minor}.{self.patch}"


@dataclass(frozen=True)
class VersionCheck:
    update_available: bool
    patch_available: bool
    coordinator_version: str
    client_version: str


def check_version(coordinator: Version, client: Version) -> VersionCheck:
    """Compare a coordinator's version against ours.

    A newer major or minor on the coordinator means a client update is
    available; a newer patch alone is only a patch.
    """
    update = coordinator.major > client.major or coordinator.minor > client.minor
    patch = not update and coordinator.patch > client.patch
    return VersionCheck(
        update_available=update,
        patch_available=patch,
        coordinator_version=str(coordinator),
        client_version=str(client),
    )


@dataclass(frozen=True)
class Info:
    version: Version | None
    payload: dict = field(default_factory=dict, repr=False)

    @classmethod
    def from_payload(cls, data: dict) -> "Info":
        raw = data.get("version") or {}
        version = None
        if all(raw.get(k) is not None for k in ("major", "minor", "patch")):
            version = Version(int(raw["major"]), int(raw["minor"]), int(raw["patch"]))
        return cls(version=version, payload=dict(data))
