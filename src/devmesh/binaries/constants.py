"""Helper binary release definitions and API constants."""
from typing import NamedTuple, Optional

# GitHub API URL structure
GITHUB_API_BASE = "https://api.github.com"
GITHUB_REPOS_PATH = "repos"
RELEASES_PATH = "releases"
LATEST_PATH = "latest"


class HelperBinary(NamedTuple):
    """A helper binary published as GitHub release assets."""

    name: str
    owner: str
    repo: str
    url_template: str
    checksum_template: Optional[str] = None
    version_prefix: str = "v"
    version_args: tuple[str, ...] = ("version",)


DOCKER_COMPOSE = HelperBinary(
    name="docker-compose",
    owner="docker",
    repo="compose",
    url_template=(
        "https://github.com/{owner}/{repo}/releases/download/"
        "{version_prefix}{version}/docker-compose-{os}-{machine}{exe}"
    ),
    checksum_template=(
        "https://github.com/{owner}/{repo}/releases/download/"
        "{version_prefix}{version}/checksums.txt"
    ),
    version_args=("version", "--short"),
)

MUTAGEN = HelperBinary(
    name="mutagen",
    owner="mutagen-io",
    repo="mutagen",
    url_template=(
        "https://github.com/{owner}/{repo}/releases/download/"
        "{version_prefix}{version}/mutagen_{os}_{arch}_{version_prefix}{version}.{archive_format}"
    ),
    checksum_template=(
        "https://github.com/{owner}/{repo}/releases/download/"
        "{version_prefix}{version}/SHA256SUMS"
    ),
)

HELPER_BINARIES = {
    DOCKER_COMPOSE.name: DOCKER_COMPOSE,
    MUTAGEN.name: MUTAGEN,
}
