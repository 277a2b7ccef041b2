"""ARS message client."""
import logging
from typing import Optional

import httpx

from .caching import get_ars_message, save_ars_message
from .config import settings
from .utils import log_request, log_response

LOGGER = logging.getLogger(__name__)


class ARSRequestError(Exception):
    """Issue with an ARS request."""


def environment_urls() -> dict[str, str]:
    return {
        "test": str(settings.ars_test_url).rstrip("/"),
        "CI": str(settings.ars_ci_url).rstrip("/"),
        "dev": str(settings.ars_dev_url).rstrip("/"),
        "prod": str(settings.ars_prod_url).rstrip("/"),
    }


def environment_url(environment: Optional[str]) -> str:
    """Base URL of an ARS environment, prod if unknown."""
    urls = environment_urls()
    return urls.get(environment, urls["prod"])


class ARSClient:
    """Fetch messages from the ARS by primary key."""

    def __init__(
        self,
        environment: Optional[str] = None,
        logger: logging.Logger = None,
    ):
        if logger is None:
            logger = LOGGER
        self.logger = logger
        self.environment = environment or settings.ars_environment
        self.url = environment_url(self.environment)

    async def _get(self, path: str, params: dict = None) -> dict:
        url = f"{self.url}{path}"
        try:
            async with httpx.AsyncClient(timeout=settings.ars_timeout) as client:
                self.logger.debug(f"Sending request to {url}")
                response = await client.get(url, params=params)
                response.raise_for_status()
                return response.json()
        except httpx.HTTPStatusError as e:
            self.logger.warning(
                {
                    "message": "Response Error contacting ARS",
                    "error": str(e),
                    "request": log_request(e.request),
                    "response": log_response(e.response),
                }
            )
        except httpx.RequestError as e:
            self.logger.warning(
                {
                    "message": "Request Error contacting ARS",
                    "error": str(e),
                    "request": log_request(e.request),
                }
            )
        except ValueError as e:
            self.logger.warning(
                {
                    "message": "Received bad JSON data from ARS",
                    "error": str(e),
                }
            )
        raise ARSRequestError(f"Failed to fetch {url}")

    async def fetch_message(self, pk: str) -> dict:
        """Get a message, preferring its merged version."""
        if settings.use_cache:
            cached = await get_ars_message(self.environment, pk)
            if cached is not None:
                self.logger.info(f"Got message {pk} from cache")
                return cached

        self.logger.info(f"Fetching message {pk} from {self.environment} ARS")
        data = await self._get(f"/ars/api/messages/{pk}", {"trace": "y"})
        merged_version = data.get("merged_version")
        if merged_version:
            self.logger.info(f"Fetching merged version {merged_version}")
            data = await self._get(f"/ars/api/messages/{merged_version}")

        if settings.use_cache:
            await save_ars_message(self.environment, pk, data)
        return data
