"""
Driver directory adapter.

Every call here fails open: the directory being slow or down must never fail
a trip command. Listing degrades to "no drivers", a ping degrades to
"not accepted", and status updates raise ``CollaboratorUnavailable`` for the
caller to log and drop.
"""
import asyncio
import enum
import logging
import math

import httpx
from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError as PydanticValidationError,
    field_validator,
)

from trip_service.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

PING_GRACE_MS = 500


class DriverCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    driver_id: str
    rating: float | None = None

    @field_validator("driver_id", mode="before")
    @classmethod
    def _numeric_id_to_str(cls, value):
        # Ids are opaque; directories may send them as JSON numbers.
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value


class DriverListing(BaseModel):
    drivers: list[DriverCandidate] = []
    reachable: bool = True


class PingOutcome(str, enum.Enum):
    ACCEPTED = "ACCEPTED"
    NOT_ACCEPTED = "NOT_ACCEPTED"
    UNREACHABLE = "UNREACHABLE"


def order_candidates(drivers: list[DriverCandidate], ordering: str) -> list[DriverCandidate]:
    """Apply the deployment's candidate ordering (``directory`` or ``rating``)."""
    if ordering == "rating":
        # Stable: equal ratings keep directory order, unrated drivers go last.
        return sorted(
            drivers,
            key=lambda d: d.rating if d.rating is not None else -math.inf,
            reverse=True,
        )
    return list(drivers)


class DriverDirectoryClient:
    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient,
        timeout: float = 5.0,
        ordering: str = "directory",
        ping_grace_ms: int = PING_GRACE_MS,
    ):
        self.base_url = base_url.rstrip("/")
        self.http = http_client
        self.timeout = timeout
        self.ordering = ordering
        self.ping_grace_ms = ping_grace_ms

    async def _request(self, method: str, url: str, timeout: float, **kwargs) -> httpx.Response:
        """
        Send one request with a hard deadline on the whole exchange.

        httpx timeouts apply per connect/read/write step, so a server trickling
        bytes could otherwise hold the call open indefinitely.
        """
        try:
            return await asyncio.wait_for(
                self.http.request(method, url, timeout=timeout, **kwargs),
                timeout,
            )
        except asyncio.TimeoutError as exc:
            raise httpx.TimeoutException(f"{method} {url} exceeded {timeout}s") from exc

    async def fetch_available(self) -> DriverListing:
        """GET {base}/available. Never raises."""
        try:
            response = await self._request("GET", f"{self.base_url}/available", self.timeout)
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("Error calling driver service: %s", exc)
            return DriverListing(reachable=False)

        raw = data.get("drivers") if isinstance(data, dict) else None
        if not isinstance(raw, list):
            logger.warning("Driver service returned no driver list")
            return DriverListing()

        drivers = []
        for entry in raw:
            try:
                drivers.append(DriverCandidate.model_validate(entry))
            except PydanticValidationError:
                logger.warning("Skipping malformed driver entry: %r", entry)

        logger.info("Received %d available drivers from driver service", len(drivers))
        return DriverListing(drivers=order_candidates(drivers, self.ordering))

    async def list_available(self) -> list[DriverCandidate]:
        listing = await self.fetch_available()
        return listing.drivers

    async def ping_outcome(self, driver_id: str, trip_id: str, timeout_ms: int) -> PingOutcome:
        """
        Ask one driver to accept a trip and wait for the answer.

        The whole call is bounded by the acceptance window plus a grace period
        for the network round trip. Never raises.
        """
        url = f"{self.base_url}/{driver_id}/ping"
        deadline = (timeout_ms + self.ping_grace_ms) / 1000
        try:
            response = await self._request(
                "POST", url, deadline, json={"trip_id": trip_id, "timeout": timeout_ms}
            )
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Driver %s did not respond: %s", driver_id, exc)
            return PingOutcome.UNREACHABLE

        if isinstance(data, dict) and data.get("accepted") is True:
            return PingOutcome.ACCEPTED
        return PingOutcome.NOT_ACCEPTED

    async def ping(self, driver_id: str, trip_id: str, timeout_ms: int) -> bool:
        outcome = await self.ping_outcome(driver_id, trip_id, timeout_ms)
        return outcome is PingOutcome.ACCEPTED

    async def set_active(self, driver_id: str, is_active: bool) -> None:
        """PUT {base}/{driver_id}/status. Raises CollaboratorUnavailable on failure."""
        url = f"{self.base_url}/{driver_id}/status"
        try:
            response = await self._request("PUT", url, self.timeout, json={"is_active": is_active})
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise CollaboratorUnavailable(
                f"Could not update driver {driver_id} status: {exc}"
            ) from exc
        logger.info("Driver %s marked is_active=%s", driver_id, is_active)
