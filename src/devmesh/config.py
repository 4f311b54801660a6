"""Explicit configuration structures."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import appdirs

APP_NAME = "devmesh"

TRUE_VALUES = {"1", "true", "yes", "on"}
FALSE_VALUES = {"0", "false", "no", "off", ""}


def to_bool(value: Any) -> bool:
    """Coerce a settings value to bool."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"Invalid boolean setting: {value!r}")


@dataclass(frozen=True)
class MeshConfig:
    """Peered service flags and proxy domain settings.

    ``service_flags`` only holds services that were explicitly configured;
    an absent key means "use the service's default".
    """
    service_flags: Mapping[str, bool] = field(default_factory=dict)
    resolve_domain_to_proxy: bool = True
    proxy_domain: str = ""
    proxy_subdomain: str = ""

    @property
    def full_domain(self) -> str:
        if not self.proxy_subdomain:
            return self.proxy_domain
        return f"{self.proxy_subdomain}.{self.proxy_domain}"

    def proxy_aliases(self) -> list[str]:
        aliases = []
        for alias in (self.proxy_domain, self.full_domain):
            if alias and alias not in aliases:
                aliases.append(alias)
        return aliases

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any], app_name: str = APP_NAME) -> "MeshConfig":
        """Build from a flat settings mapping.

        Recognised keys: ``<app>_<service>``, ``<app>_resolve_domain_to_traefik``,
        ``traefik_domain`` and ``traefik_subdomain``.
        """
        prefix = f"{app_name}_"
        resolve_key = f"{prefix}resolve_domain_to_traefik"

        flags = {}
        for key, value in settings.items():
            if not key.startswith(prefix) or key == resolve_key:
                continue
            try:
                flags[key[len(prefix):]] = to_bool(value)
            except ValueError:
                # non-boolean settings share the prefix, they are not service flags
                continue

        return cls(
            service_flags=flags,
            resolve_domain_to_proxy=to_bool(settings.get(resolve_key, True)),
            proxy_domain=str(settings.get("traefik_domain", "") or ""),
            proxy_subdomain=str(settings.get("traefik_subdomain", "") or ""),
        )


@dataclass(frozen=True)
class InstallConfig:
    """Where helper binaries are installed and cached"""
    bin_dir: Path = field(default_factory=lambda: Path(appdirs.user_data_dir(APP_NAME)) / "bin")
    cache_dir: Path = field(
        default_factory=lambda: Path(appdirs.user_cache_dir(APP_NAME)) / "binaries"
    )
