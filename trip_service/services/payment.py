"""
Payment service adapter.

``charge`` always returns a result: any failure is reported as FAILED so trip
completion can still reach a terminal status. No retries.
"""
import asyncio
import logging
from decimal import Decimal

import httpx
from pydantic import BaseModel

from trip_service.exceptions import CollaboratorUnavailable

logger = logging.getLogger(__name__)

PAYMENT_SUCCESS = "SUCCESS"
PAYMENT_FAILED = "FAILED"


class ChargeResult(BaseModel):
    status: str
    transaction_id: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.status == PAYMENT_SUCCESS


class PaymentClient:
    def __init__(self, base_url: str, http_client: httpx.AsyncClient, timeout: float = 10.0):
        self.base_url = base_url.rstrip("/")
        self.http = http_client
        self.timeout = timeout

    async def charge(self, trip_id: str, amount: Decimal, idempotency_key: str) -> ChargeResult:
        """
        Charge ``amount`` for a trip.
        Returns: ChargeResult(status="SUCCESS"/"FAILED", transaction_id=...)
        """
        try:
            data = await self._call_payment_service(trip_id, amount, idempotency_key)
        except CollaboratorUnavailable as exc:
            logger.error("Error calling payment service for trip=%s: %s", trip_id, exc)
            return ChargeResult(status=PAYMENT_FAILED)

        if data.get("status") != PAYMENT_SUCCESS:
            logger.warning("Payment declined for trip=%s: %s", trip_id, data.get("status"))
            return ChargeResult(status=PAYMENT_FAILED)

        transaction_id = data.get("transaction_id")
        logger.info("Payment success: trip=%s amount=%s txn=%s", trip_id, amount, transaction_id)
        return ChargeResult(
            status=PAYMENT_SUCCESS,
            transaction_id=str(transaction_id) if transaction_id is not None else None,
        )

    async def _call_payment_service(self, trip_id: str, amount: Decimal, idempotency_key: str) -> dict:
        # wait_for bounds the whole exchange; httpx only bounds each read.
        try:
            resp = await asyncio.wait_for(
                self.http.post(
                    f"{self.base_url}/charge",
                    json={
                        "trip_id": trip_id,
                        "amount": float(amount),
                        "idempotency_key": idempotency_key,
                    },
                    timeout=self.timeout,
                ),
                self.timeout,
            )
            if not resp.is_success:
                raise CollaboratorUnavailable(f"Payment service error {resp.status_code}: {resp.text}")
            data = resp.json()
        except asyncio.TimeoutError as exc:
            raise CollaboratorUnavailable(f"Payment service timed out after {self.timeout}s") from exc
        except (httpx.HTTPError, ValueError) as exc:
            raise CollaboratorUnavailable(str(exc)) from exc

        if not isinstance(data, dict):
            raise CollaboratorUnavailable("Malformed payment service response")
        return data
