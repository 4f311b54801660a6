"""Container engine client."""
import docker
import requests
from docker.errors import DockerException

from devmesh.errors import EngineUnreachable, EngineVersionMismatch
from devmesh.logging import get_logger
from devmesh.utils.versions import version_at_least

logger = get_logger(__name__)

MINIMUM_ENGINE_VERSION = "20.10.0"

# docker-py wraps HTTP status errors only; transport failures surface as requests errors
ENGINE_ERRORS = (DockerException, requests.exceptions.RequestException)


def new_docker_client() -> docker.DockerClient:
    """Connect to the engine configured by the environment (DOCKER_HOST etc)."""
    try:
        client = docker.from_env()
        client.ping()
    except ENGINE_ERRORS as e:
        raise EngineUnreachable(
            "Docker API is unreachable: Docker is not running or the current "
            "user cannot access it"
        ) from e
    return client


def check_engine_version(client: docker.DockerClient, minimum: str = MINIMUM_ENGINE_VERSION) -> str:
    """Return the engine version, failing when it is older than ``minimum``."""
    try:
        current = client.version()["Version"]
    except ENGINE_ERRORS as e:
        raise EngineUnreachable("Docker API is unreachable") from e

    logger.debug("engine_version", version=current, minimum=minimum)
    if not version_at_least(current, minimum):
        raise EngineVersionMismatch(current, minimum)
    return current
