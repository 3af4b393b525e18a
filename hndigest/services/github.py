"""
Commit hash lookup for HN Digest.
"""
import asyncio
import logging
import subprocess
from typing import Optional

import aiohttp

from hndigest.config import GitHubSettings

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
UNKNOWN_COMMIT = "unknown"
SHORT_SHA_LENGTH = 7


class CommitHashProvider:
    """
    Resolves the commit the running code was built from.

    Tried in order: explicit override, GitHub API, local ``git``, then "unknown".
    """
    def __init__(self, settings: Optional[GitHubSettings] = None):
        self.settings = settings or GitHubSettings()

    async def fetch_remote_hash(self) -> Optional[str]:
        """
        Ask the GitHub API for the head of the configured branch.

        Returns:
            Short SHA, or None if the repository is not configured or the call fails
        """
        if not (self.settings.owner and self.settings.repo):
            return None

        url = f"{GITHUB_API_URL}/repos/{self.settings.owner}/{self.settings.repo}/commits/{self.settings.branch}"
        headers = {'Accept': 'application/vnd.github+json'}
        if self.settings.token:
            headers['Authorization'] = f'Bearer {self.settings.token}'

        try:
            timeout = aiohttp.ClientTimeout(total=self.settings.timeout)
            async with aiohttp.ClientSession(headers=headers, timeout=timeout) as session:
                async with session.get(url) as response:
                    response.raise_for_status()
                    data = await response.json()
            return str(data['sha'])[:SHORT_SHA_LENGTH]
        except (aiohttp.ClientError, asyncio.TimeoutError, KeyError, TypeError, ValueError) as e:
            logger.warning(f"GitHub API failed: {e}")
            return None

    def read_local_hash(self) -> Optional[str]:
        """Return ``git rev-parse --short HEAD`` for the working directory, or None."""
        logger.info("Trying local git...")
        try:
            result = subprocess.run(
                ['git', 'rev-parse', '--short', 'HEAD'],
                capture_output=True,
                text=True,
                timeout=self.settings.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error(f"Local git failed: {e}")
            return None
        return result.stdout.strip() or None

    async def get_commit_hash(self) -> str:
        """
        Resolve the commit hash, never raising.

        Returns:
            Short commit hash, or "unknown"
        """
        if self.settings.commit_hash:
            return self.settings.commit_hash

        sha = await self.fetch_remote_hash()
        if not sha:
            sha = self.read_local_hash()
        if not sha:
            logger.info("Falling back to unknown SHA")
            sha = UNKNOWN_COMMIT
        return sha
