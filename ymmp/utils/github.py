import os
from typing import Dict, Optional

import msgspec
import requests
from loguru import logger

from ymmp.models.release import ReleaseMetadata
from ymmp.models.settings import Settings
from ymmp.utils.app_info import AppInfo
from ymmp.utils.constants import (
    API_TIMEOUT,
    DOWNLOAD_TIMEOUT,
    GITHUB_ACCEPT_HEADER,
    GITHUB_LATEST_RELEASE_URL,
    GITHUB_TOKEN_ENV,
)
from ymmp.utils.exception import (
    DownloadError,
    RateLimitError,
    ReleaseFetchError,
    ReleaseNotFoundError,
)

RATE_LIMIT_STATUSES = {403, 429}

ERR_RATE_LIMIT = (
    "GitHub Rate Limit Exceeded. Run 'ymmp config set token <your_token>' or use --token."
)
ERR_RELEASE_NOT_FOUND = "Release not found. The repository might be private or changed."


class GitHubService:
    """
    Client for the release feed of the Yandex Music mod.

    Token precedence: explicit argument, configured token, ``GITHUB_TOKEN``.
    """

    def __init__(
        self,
        settings: Settings,
        session: Optional[requests.Session] = None,
        release_url: str = GITHUB_LATEST_RELEASE_URL,
    ) -> None:
        self.settings = settings
        self.session = session or requests.Session()
        self.release_url = release_url

    def _resolve_token(self, token_override: Optional[str]) -> Optional[str]:
        return (
            token_override
            or self.settings.github_token
            or os.environ.get(GITHUB_TOKEN_ENV)
            or None
        )

    def get_headers(self, token_override: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "User-Agent": AppInfo().user_agent,
            "Accept": GITHUB_ACCEPT_HEADER,
        }
        token = self._resolve_token(token_override)
        if token:
            headers["Authorization"] = f"token {token}"
        return headers

    @staticmethod
    def _raise_for_status(response: requests.Response) -> None:
        if response.status_code in RATE_LIMIT_STATUSES:
            raise RateLimitError(ERR_RATE_LIMIT)
        if response.status_code == 404:
            raise ReleaseNotFoundError(ERR_RELEASE_NOT_FOUND)
        response.raise_for_status()

    def get_latest_release(
        self, token_override: Optional[str] = None
    ) -> ReleaseMetadata:
        """
        Fetch and decode the latest release.

        Raises:
            RateLimitError: on HTTP 403 / 429
            ReleaseNotFoundError: on HTTP 404
            ReleaseFetchError: on any other transport or decoding failure
        """
        logger.info(f"Fetching latest release information from {self.release_url}")
        try:
            response = self.session.get(
                self.release_url,
                headers=self.get_headers(token_override),
                timeout=API_TIMEOUT,
            )
            self._raise_for_status(response)
            release = msgspec.json.decode(response.content, type=ReleaseMetadata)
        except requests.RequestException as e:
            logger.warning(f"Failed to fetch release information: {e}")
            raise ReleaseFetchError(f"Failed to connect to GitHub API: {e}") from e
        except (msgspec.DecodeError, msgspec.ValidationError) as e:
            logger.warning(f"Unexpected release payload: {e}")
            raise ReleaseFetchError(f"Unexpected release payload: {e}") from e

        logger.info(
            f"Latest release: {release.name} ({len(release.assets)} assets, published {release.published_at})"
        )
        return release

    def download_stream(
        self, url: str, token_override: Optional[str] = None
    ) -> requests.Response:
        """
        Open a streamed download. The caller owns (and must close) the response.
        """
        logger.info(f"Starting download from URL: {url}")
        try:
            response = self.session.get(
                url,
                headers=self.get_headers(token_override),
                stream=True,
                timeout=DOWNLOAD_TIMEOUT,
            )
        except requests.RequestException as e:
            logger.error(f"Download failed: {e}")
            raise DownloadError(f"Failed to download {url}: {e}") from e

        try:
            self._raise_for_status(response)
        except requests.HTTPError as e:
            response.close()
            raise DownloadError(f"Failed to download {url}: {e}") from e
        except (RateLimitError, ReleaseNotFoundError):
            response.close()
            raise
        logger.debug(f"HTTP response status: {response.status_code}")
        return response
