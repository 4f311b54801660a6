"""Peered service selection."""
from dataclasses import dataclass
from typing import Mapping

PROXY_SERVICE = "traefik"

DEFAULT_ENABLED_SERVICES = (
    "tunnel",
    "mailhog",
    "phpmyadmin",
    "elastichq",
)

DEFAULT_DISABLED_SERVICES = (
    "adminer",
)


def is_enabled_permissive(flags: Mapping[str, bool], service: str) -> bool:
    """Enabled unless explicitly disabled."""
    return bool(flags.get(service, True))


def is_enabled_strict(flags: Mapping[str, bool], service: str) -> bool:
    """Disabled unless explicitly enabled."""
    return bool(flags.get(service, False))


@dataclass(frozen=True)
class PeeredServiceSet:
    """Shared services attached to every environment network."""
    mandatory: tuple[str, ...] = (PROXY_SERVICE,)
    default_enabled: tuple[str, ...] = DEFAULT_ENABLED_SERVICES
    default_disabled: tuple[str, ...] = DEFAULT_DISABLED_SERVICES

    def resolve(self, flags: Mapping[str, bool]) -> list[str]:
        services = list(self.mandatory)
        services += [s for s in self.default_enabled if is_enabled_permissive(flags, s)]
        services += [s for s in self.default_disabled if is_enabled_strict(flags, s)]
        return services


DEFAULT_PEERED_SERVICES = PeeredServiceSet()
