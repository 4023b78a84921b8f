"""
Threshold Service
=================

Fetches the Normal / Banjir elevation levels from the config endpoint.

HOW IT WORKS:
------------
Every time a client connects, its session asks for the current levels:

    Session opens
         |
         | GET THRESHOLD_URL
         v
    {"Normal": 100, "Banjir": 80}
         |
         v
    ThresholdPair(normal=100, banjir=80)   <- used for the whole session

If the endpoint is down, returns garbage, or sends an inverted pair
(Banjir >= Normal), we log it and fall back to the built-in defaults.
Classification never stops because the config server is unhappy.
"""

import logging
from typing import Optional

import httpx
from pydantic import ValidationError

from flood_relay.models import ThresholdPair

logger = logging.getLogger(__name__)


class ThresholdFetchError(Exception):
    """The threshold endpoint could not give us a usable pair."""


class ThresholdService:
    """
    Talks to the threshold config endpoint.

    HOW TO USE:
    ----------
    service = ThresholdService(
        threshold_url="http://host.docker.internal:3000/api/level",
        defaults=ThresholdPair(normal=100, banjir=80),
    )

    thresholds = await service.get_thresholds()   # never raises
    """

    def __init__(
        self,
        threshold_url: str,
        defaults: ThresholdPair,
        request_timeout: float = 10.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Set up the service.

        Args:
            threshold_url: Where to GET the levels from
            defaults: Levels to use when the endpoint lets us down
            request_timeout: How long to wait for the endpoint (seconds)
            http_client: Bring your own client (tests pass one with a mock transport)
        """
        self.threshold_url = threshold_url
        self.defaults = defaults
        self.http_client = http_client or httpx.AsyncClient(timeout=request_timeout)

    async def fetch_thresholds(self) -> ThresholdPair:
        """
        GET the levels from the endpoint.

        Raises:
            ThresholdFetchError: Network trouble, bad status, bad body,
                                 or Banjir not below Normal.
        """
        try:
            response = await self.http_client.get(self.threshold_url)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPError as e:
            raise ThresholdFetchError(f"Error fetching level from {self.threshold_url}: {e}") from e
        except ValueError as e:
            raise ThresholdFetchError(f"Failed to decode level body: {e}") from e

        try:
            return ThresholdPair.model_validate(body)
        except ValidationError as e:
            raise ThresholdFetchError(f"Invalid level configuration {body!r}: {e}") from e

    async def get_thresholds(self, label: str = "relay") -> ThresholdPair:
        """
        Get the levels, falling back to defaults on any failure.

        Args:
            label: Shown in log lines (usually the peer address)
        """
        try:
            thresholds = await self.fetch_thresholds()
        except ThresholdFetchError as e:
            logger.warning(
                f"[{label}] {e} - using default levels "
                f"(Normal={self.defaults.normal}, Banjir={self.defaults.banjir})"
            )
            return self.defaults

        logger.debug(f"[{label}] Levels fetched: Normal={thresholds.normal}, Banjir={thresholds.banjir}")
        return thresholds

    async def close(self):
        """
        Clean up when we're done.

        Called when the server shuts down.
        """
        await self.http_client.aclose()
