"""
HTTP-level tests for the payment client.
"""
import asyncio
import json
import time
from decimal import Decimal

import httpx
import pytest
import pytest_asyncio
import respx
from httpx import Response

from trip_service.services.payment import PaymentClient

BASE_URL = "http://payments.test/v1/payments"


@pytest_asyncio.fixture
async def http():
    async with httpx.AsyncClient() as http_client:
        yield http_client


@pytest.fixture
def client(http) -> PaymentClient:
    return PaymentClient(base_url=BASE_URL, http_client=http, timeout=10.0)


@pytest.mark.asyncio
class TestCharge:
    async def test_success(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            route = mock.post("/charge").mock(return_value=Response(200, json={
                "status": "SUCCESS", "transaction_id": "txn-42",
            }))
            result = await client.charge("trip-1", Decimal("17.75"), "idem-1")

        assert result.succeeded
        assert result.status == "SUCCESS"
        assert result.transaction_id == "txn-42"
        assert json.loads(route.calls.last.request.content) == {
            "trip_id": "trip-1",
            "amount": 17.75,
            "idempotency_key": "idem-1",
        }

    async def test_declined(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            mock.post("/charge").mock(return_value=Response(200, json={"status": "FAILED"}))
            result = await client.charge("trip-1", Decimal("5.00"), "idem-2")

        assert not result.succeeded
        assert result.status == "FAILED"
        assert result.transaction_id is None

    async def test_server_error_is_failure(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            mock.post("/charge").mock(return_value=Response(502, text="Bad Gateway"))
            result = await client.charge("trip-1", Decimal("5.00"), "idem-3")

        assert result.status == "FAILED"

    async def test_timeout_is_failure(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            mock.post("/charge").mock(side_effect=httpx.ReadTimeout("Request timed out"))
            result = await client.charge("trip-1", Decimal("5.00"), "idem-4")

        assert result.status == "FAILED"

    async def test_malformed_body_is_failure(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            mock.post("/charge").mock(return_value=Response(200, json=["SUCCESS"]))
            result = await client.charge("trip-1", Decimal("5.00"), "idem-5")

        assert result.status == "FAILED"

    async def test_no_retry(self, client):
        async with respx.mock(base_url=BASE_URL) as mock:
            route = mock.post("/charge").mock(return_value=Response(500))
            await client.charge("trip-1", Decimal("5.00"), "idem-6")

        assert route.call_count == 1

    async def test_trickling_response_is_failure_within_timeout(self):
        async def trickle():
            while True:
                await asyncio.sleep(0.05)
                yield b" "

        transport = httpx.MockTransport(lambda request: Response(200, content=trickle()))
        async with httpx.AsyncClient(transport=transport) as http:
            client = PaymentClient(base_url=BASE_URL, http_client=http, timeout=0.2)
            started = time.monotonic()
            result = await client.charge("trip-1", Decimal("5.00"), "idem-7")
            elapsed = time.monotonic() - started

        assert result.status == "FAILED"
        assert elapsed < 1.5
