"""Attach shared services to environment networks.

Attach/detach over the peered services is best effort: a failure for one
service or container is recorded in the returned :class:`BatchResult` and
logged at debug level, and the remaining services are still processed.
Nothing is rolled back. All other operations raise on the first failure.
"""
from typing import Any, Optional

from devmesh.config import MeshConfig
from devmesh.errors import (
    ContainerAmbiguous,
    ContainerNotFound,
    EngineQueryFailure,
    NetworkQueryFailure,
    UnsupportedAction,
)
from devmesh.logging import get_logger
from devmesh.mesh.client import ENGINE_ERRORS
from devmesh.mesh.services import DEFAULT_PEERED_SERVICES, PROXY_SERVICE, PeeredServiceSet
from devmesh.types import (
    BatchResult,
    NetworkAction,
    NetworkEndpointSpec,
    OutcomeStatus,
    ServiceOutcome,
)

logger = get_logger(__name__)


def parse_action(action: str | NetworkAction) -> NetworkAction:
    try:
        return NetworkAction(action)
    except ValueError as e:
        raise UnsupportedAction(str(action)) from e


def attached_networks(container: Any) -> set[str]:
    """Names of the networks a listed container is attached to."""
    settings = container.attrs.get("NetworkSettings") or {}
    return set(settings.get("Networks") or {})


class MeshOrchestrator:
    """Manages peered service containers on environment networks."""

    def __init__(
        self,
        client: Any,
        config: Optional[MeshConfig] = None,
        services: PeeredServiceSet = DEFAULT_PEERED_SERVICES,
    ):
        self.client = client
        self.config = config or MeshConfig()
        self.services = services

    def peered_services(self) -> list[str]:
        return self.services.resolve(self.config.service_flags)

    def endpoint_spec(self, service: str, container_id: str, network: str) -> NetworkEndpointSpec:
        aliases: tuple[str, ...] = ()
        if service == PROXY_SERVICE and self.config.resolve_domain_to_proxy:
            aliases = tuple(self.config.proxy_aliases())
            logger.debug("proxy_network_aliases", aliases=aliases)
        return NetworkEndpointSpec(network=network, container=container_id, aliases=aliases)

    def set_peered_services(self, action: str | NetworkAction, network: str) -> BatchResult:
        """Connect or disconnect every enabled peered service to ``network``."""
        action = parse_action(action)
        result = BatchResult(action=action, network=network)

        for service in self.peered_services():
            try:
                containers = self.client.containers.list(filters={"name": service})
            except ENGINE_ERRORS as e:
                logger.debug("peered_service_lookup_failed", service=service, error=str(e))
                result.add(ServiceOutcome(service=service, status=OutcomeStatus.FAILED, error=e))
                continue

            for container in containers:
                result.add(self._apply(action, service, container, network))

        logger.debug(
            "peered_services_updated",
            action=action.value,
            network=network,
            succeeded=len(result.succeeded),
            failed=len(result.failed),
        )
        return result

    def _apply(self, action: NetworkAction, service: str, container: Any, network: str) -> ServiceOutcome:
        attached = network in attached_networks(container)

        if action == NetworkAction.CONNECT and attached:
            logger.debug("container_already_connected", container=container.name, network=network)
            return ServiceOutcome(service, OutcomeStatus.SKIPPED, container.id)
        if action == NetworkAction.DISCONNECT and not attached:
            logger.debug("container_not_connected", container=container.name, network=network)
            return ServiceOutcome(service, OutcomeStatus.SKIPPED, container.id)

        try:
            if action == NetworkAction.CONNECT:
                spec = self.endpoint_spec(service, container.id, network)
                logger.debug("connecting_container", container=container.name, network=network)
                self.client.api.connect_container_to_network(
                    spec.container, spec.network, aliases=list(spec.aliases) or None
                )
                return ServiceOutcome(service, OutcomeStatus.CONNECTED, container.id)

            logger.debug("disconnecting_container", container=container.name, network=network)
            self.client.api.disconnect_container_from_network(container.id, network)
            return ServiceOutcome(service, OutcomeStatus.DISCONNECTED, container.id)

        except ENGINE_ERRORS as e:
            logger.debug(
                "peered_service_update_failed",
                action=action.value,
                container=container.name,
                network=network,
                error=str(e),
            )
            return ServiceOutcome(service, OutcomeStatus.FAILED, container.id, e)

    def find_container_by_name(self, name: str) -> str:
        """ID of the single running container whose name matches ``name``."""
        try:
            containers = self.client.containers.list(filters={"name": name})
        except ENGINE_ERRORS as e:
            raise EngineQueryFailure(f"Failed to list containers matching {name}") from e

        if not containers:
            raise ContainerNotFound(name)
        if len(containers) > 1:
            raise ContainerAmbiguous(name, [c.name for c in containers])

        return containers[0].id

    def is_container_running(self, name: str) -> bool:
        try:
            self.find_container_by_name(name)
        except ContainerNotFound:
            return False
        return True

    def network_exists(self, name: str) -> bool:
        try:
            networks = self.client.networks.list(names=[name])
        except ENGINE_ERRORS as e:
            raise NetworkQueryFailure(name) from e

        # the engine's name filter also matches substrings
        exists = any(n.name == name for n in networks)
        logger.debug("network_lookup", network=name, exists=exists)
        return exists
