"""
Driver acceptance negotiation.

Flow:
  1. Receive trip_id + ordered driver candidates
  2. Ping the first candidate and wait up to the acceptance window
  3. First driver to accept wins; stop immediately
  4. Declined / timed out / unreachable -> ping the next candidate
  5. Candidates exhausted -> no assignment

Pings are strictly one at a time, so at most one driver is ever considering
a given trip. Worst case latency is ``timeout x len(candidates)``.
"""
import logging
from collections.abc import Sequence

from trip_service.services.driver_directory import (
    DriverCandidate,
    DriverDirectoryClient,
    PingOutcome,
)

logger = logging.getLogger(__name__)

ACCEPTANCE_TIMEOUT_MS = 5000


async def negotiate(
    trip_id: str,
    candidates: Sequence[DriverCandidate],
    directory: DriverDirectoryClient,
    timeout_ms: int = ACCEPTANCE_TIMEOUT_MS,
) -> str | None:
    """
    Returns the driver_id of the first candidate who accepts, or None.
    """
    if not candidates:
        logger.info("No driver candidates for trip=%s", trip_id)
        return None

    for candidate in candidates:
        logger.info("Pinging driver %s for trip=%s", candidate.driver_id, trip_id)
        outcome = await directory.ping_outcome(candidate.driver_id, trip_id, timeout_ms)

        if outcome is PingOutcome.ACCEPTED:
            logger.info("Driver %s accepted trip=%s", candidate.driver_id, trip_id)
            return candidate.driver_id

        if outcome is PingOutcome.UNREACHABLE:
            logger.warning(
                "Driver %s unreachable for trip=%s. Moving to next...",
                candidate.driver_id, trip_id,
            )
        else:
            logger.info(
                "Driver %s did not accept trip=%s. Moving to next...",
                candidate.driver_id, trip_id,
            )

    logger.warning("No driver accepted trip=%s after %d pings", trip_id, len(candidates))
    return None
