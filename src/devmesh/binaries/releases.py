"""Release version lookup for helper binaries."""
import aiohttp

from devmesh.binaries.constants import (
    GITHUB_API_BASE,
    GITHUB_REPOS_PATH,
    LATEST_PATH,
    RELEASES_PATH,
    HelperBinary,
)


async def get_github_latest_release(owner: str, repo: str) -> str:
    """Generic GitHub latest release fetcher."""
    url = f"{GITHUB_API_BASE}/{GITHUB_REPOS_PATH}/{owner}/{repo}/{RELEASES_PATH}/{LATEST_PATH}"

    async with aiohttp.ClientSession() as session:
        async with session.get(url) as response:
            response.raise_for_status()
            data = await response.json()
            return data["tag_name"].lstrip("v")


async def get_latest_version(binary: HelperBinary) -> str:
    """Latest released version of a helper binary."""
    return await get_github_latest_release(binary.owner, binary.repo)
