"""Container network mesh."""
from devmesh.mesh.client import check_engine_version, new_docker_client
from devmesh.mesh.orchestrator import MeshOrchestrator
from devmesh.mesh.services import DEFAULT_PEERED_SERVICES, PROXY_SERVICE, PeeredServiceSet

__all__ = [
    "check_engine_version",
    "new_docker_client",
    "MeshOrchestrator",
    "DEFAULT_PEERED_SERVICES",
    "PROXY_SERVICE",
    "PeeredServiceSet",
]
