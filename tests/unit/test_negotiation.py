"""
Unit tests for sequential driver negotiation.
"""
from unittest.mock import AsyncMock, call

import pytest

from trip_service.services.driver_directory import (
    DriverCandidate,
    DriverDirectoryClient,
    PingOutcome,
)
from trip_service.services.negotiation import ACCEPTANCE_TIMEOUT_MS, negotiate


def _candidates(*ids):
    return [DriverCandidate(driver_id=i) for i in ids]


@pytest.fixture
def directory():
    return AsyncMock(spec=DriverDirectoryClient)


@pytest.mark.asyncio
class TestNegotiate:
    async def test_empty_candidates_no_pings(self, directory):
        result = await negotiate("trip-1", [], directory)
        assert result is None
        directory.ping_outcome.assert_not_awaited()

    async def test_first_acceptor_wins(self, directory):
        directory.ping_outcome.side_effect = [
            PingOutcome.NOT_ACCEPTED,
            PingOutcome.NOT_ACCEPTED,
            PingOutcome.ACCEPTED,
        ]
        result = await negotiate("trip-1", _candidates("d1", "d2", "d3", "d4", "d5"), directory)

        assert result == "d3"
        # Exactly k=3 pings, in candidate order; d4 and d5 never pinged.
        assert directory.ping_outcome.await_args_list == [
            call("d1", "trip-1", ACCEPTANCE_TIMEOUT_MS),
            call("d2", "trip-1", ACCEPTANCE_TIMEOUT_MS),
            call("d3", "trip-1", ACCEPTANCE_TIMEOUT_MS),
        ]

    async def test_first_candidate_accepts(self, directory):
        directory.ping_outcome.return_value = PingOutcome.ACCEPTED
        result = await negotiate("trip-1", _candidates("d1", "d2"), directory)
        assert result == "d1"
        assert directory.ping_outcome.await_count == 1

    async def test_nobody_accepts(self, directory):
        directory.ping_outcome.return_value = PingOutcome.NOT_ACCEPTED
        result = await negotiate("trip-1", _candidates("d1", "d2", "d3", "d4"), directory)
        assert result is None
        assert directory.ping_outcome.await_count == 4

    async def test_unreachable_driver_is_skipped(self, directory):
        directory.ping_outcome.side_effect = [PingOutcome.UNREACHABLE, PingOutcome.ACCEPTED]
        result = await negotiate("trip-1", _candidates("d1", "d2"), directory)
        assert result == "d2"

    async def test_all_unreachable_is_no_assignment(self, directory):
        directory.ping_outcome.return_value = PingOutcome.UNREACHABLE
        result = await negotiate("trip-1", _candidates("d1", "d2"), directory)
        assert result is None
        assert directory.ping_outcome.await_count == 2

    async def test_custom_timeout_passed_to_every_ping(self, directory):
        directory.ping_outcome.return_value = PingOutcome.NOT_ACCEPTED
        await negotiate("trip-1", _candidates("d1", "d2"), directory, timeout_ms=1500)
        assert all(c.args[2] == 1500 for c in directory.ping_outcome.await_args_list)
