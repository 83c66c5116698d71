"""
Async HTTP client for the checkout endpoints.

Used by the storefront-side PaymentFlow and by scripts that drive a checkout
end to end against a running service.
"""

from typing import Any, Optional

import httpx

from src.platform.logging.loguru_io import Logger


class CheckoutApiClient:
    def __init__(
        self,
        *,
        base_url: str,
        session_token: Optional[str] = None,
        cookie_name: str = 'session',
        timeout_seconds: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        cookies = {cookie_name: session_token} if session_token else None
        self._client = client or httpx.AsyncClient(
            base_url=base_url, cookies=cookies, timeout=timeout_seconds, transport=transport
        )

    async def __aenter__(self) -> 'CheckoutApiClient':
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def create_order(self, *, payload: dict[str, Any]) -> dict[str, Any]:
        return await self._post('/api/checkout/orders', json=payload)

    async def retry_payment(
        self, *, order_id: str, transaction_id: Optional[str] = None
    ) -> dict[str, Any]:
        return await self._post(
            f'/api/checkout/orders/{order_id}/retry',
            json={'transaction_id': transaction_id},
        )

    async def get_transaction_status(self, *, transaction_id: str) -> dict[str, Any]:
        response = await self._client.get(f'/api/checkout/transactions/{transaction_id}/status')
        response.raise_for_status()
        return response.json()

    async def check_for_recent_order(self, *, listing_id: str) -> dict[str, Any]:
        response = await self._client.get(f'/api/checkout/listings/{listing_id}/recent-order')
        response.raise_for_status()
        return response.json()

    async def log_checkout_rating(
        self, *, order_id: str, rating: int, reason: Optional[str] = None
    ) -> dict[str, Any]:
        return await self._post(
            f'/api/checkout/orders/{order_id}/feedback',
            json={'rating': rating, 'reason': reason},
        )

    async def _post(self, path: str, *, json: dict[str, Any]) -> dict[str, Any]:
        response = await self._client.post(path, json=json)
        # Business failures come back as 4xx/5xx with a structured body
        try:
            return response.json()
        except ValueError:
            Logger.base.error(
                f'❌ [CHECKOUT-CLIENT] Non-JSON response {response.status_code} from {path}'
            )
            response.raise_for_status()
            raise
