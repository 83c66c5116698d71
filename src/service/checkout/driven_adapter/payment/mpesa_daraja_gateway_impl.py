"""
M-Pesa Daraja API gateway (Lipa na M-Pesa Online / STK push)

https://developer.safaricom.co.ke/APIs/MpesaExpressSimulate

Flow:
1. OAuth client-credentials token (cached until shortly before it expires)
2. STK push: the buyer gets a PIN prompt on their phone
3. Safaricom calls our callback URL with the result (handled by the callback controller)
4. STK query: used by the stale-order sweeper when the callback never arrived
"""

import asyncio
import base64
from datetime import datetime
import time
from typing import Any, Optional
import zoneinfo

import httpx
from opentelemetry import trace

from src.platform.config.core_setting import Settings
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.checkout_metrics import metrics
from src.service.checkout.app.dto.payment_dto import GatewayStatusResult, PaymentInitiationResult
from src.service.checkout.app.interface.i_payment_gateway import IPaymentGateway


AUTH_FAILED_MESSAGE = 'Could not authenticate with M-Pesa API.'
INITIATION_FAILED_MESSAGE = 'Failed to initiate M-Pesa payment.'
UNEXPECTED_ERROR_MESSAGE = 'An unexpected server error occurred.'

# Refresh the token this many seconds before Safaricom says it expires
_TOKEN_EXPIRY_MARGIN_SECONDS = 60


def normalize_phone_number(phone_number: str) -> str:
    """07XXXXXXXX / +2547XXXXXXXX / 2547XXXXXXXX -> 2547XXXXXXXX"""
    phone = ''.join(phone_number.split())
    if phone.startswith('+'):
        phone = phone[1:]
    if phone.startswith('0'):
        phone = f'254{phone[1:]}'
    return phone


def build_password(*, shortcode: str, passkey: str, timestamp: str) -> str:
    return base64.b64encode(f'{shortcode}{passkey}{timestamp}'.encode()).decode()


class MpesaDarajaGatewayImpl(IPaymentGateway):
    def __init__(
        self,
        *,
        base_url: str,
        consumer_key: str,
        consumer_secret: str,
        shortcode: str,
        passkey: str,
        callback_url: str,
        transaction_type: str = 'CustomerPayBillOnline',
        timeout_seconds: float = 15.0,
        timezone_name: str = 'Africa/Nairobi',
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.consumer_key = consumer_key
        self.consumer_secret = consumer_secret
        self.shortcode = shortcode
        self.passkey = passkey
        self.callback_url = callback_url
        self.transaction_type = transaction_type
        self.timezone = zoneinfo.ZoneInfo(timezone_name)
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip('/'),
            timeout=httpx.Timeout(timeout_seconds),
            limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
        )
        self._access_token: Optional[str] = None
        self._token_expires_at = 0.0
        self._token_lock = asyncio.Lock()
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    def from_settings(cls, settings: Settings) -> 'MpesaDarajaGatewayImpl':
        return cls(
            base_url=settings.MPESA_BASE_URL,
            consumer_key=settings.MPESA_CONSUMER_KEY,
            consumer_secret=settings.MPESA_CONSUMER_SECRET.get_secret_value(),
            shortcode=settings.MPESA_SHORTCODE,
            passkey=settings.MPESA_PASSKEY.get_secret_value(),
            callback_url=settings.MPESA_CALLBACK_URL,
            transaction_type=settings.MPESA_TRANSACTION_TYPE,
            timeout_seconds=settings.MPESA_TIMEOUT_SECONDS,
            timezone_name=settings.MPESA_TIMEZONE,
        )

    def _is_configured(self) -> bool:
        return all(
            (self.consumer_key, self.consumer_secret, self.shortcode, self.passkey, self.callback_url)
        )

    def _timestamp(self) -> str:
        return datetime.now(self.timezone).strftime('%Y%m%d%H%M%S')

    async def _get_access_token(self) -> Optional[str]:
        async with self._token_lock:
            if self._access_token and time.monotonic() < self._token_expires_at:
                return self._access_token

            with metrics.gateway_request_duration.labels(operation='token').time():
                response = await self._client.get(
                    '/oauth/v1/generate',
                    params={'grant_type': 'client_credentials'},
                    auth=(self.consumer_key, self.consumer_secret),
                )
            if not response.is_success:
                Logger.base.error(
                    f'🔑 [MPESA] Token request failed: HTTP {response.status_code} {response.text}'
                )
                return None

            data = response.json()
            token = data.get('access_token')
            if not token:
                Logger.base.error('🔑 [MPESA] Token response carried no access_token')
                return None

            expires_in = int(data.get('expires_in') or 3599)
            self._access_token = token
            self._token_expires_at = (
                time.monotonic() + expires_in - _TOKEN_EXPIRY_MARGIN_SECONDS
            )
            return token

    @staticmethod
    def _json_body(response: httpx.Response) -> dict[str, Any]:
        if not response.content:
            return {}
        body = response.json()
        return body if isinstance(body, dict) else {}

    @Logger.io
    async def initiate(
        self, *, phone_number: str, amount: int, order_id: str
    ) -> PaymentInitiationResult:
        with self.tracer.start_as_current_span(
            'gateway.mpesa.stk_push', attributes={'order.id': order_id, 'amount': amount}
        ) as span:
            if not self._is_configured():
                Logger.base.error('🔧 [MPESA] Daraja credentials or shortcode are not configured')
                return PaymentInitiationResult(success=False, error=AUTH_FAILED_MESSAGE)

            try:
                token = await self._get_access_token()
                if not token:
                    return PaymentInitiationResult(success=False, error=AUTH_FAILED_MESSAGE)

                timestamp = self._timestamp()
                msisdn = normalize_phone_number(phone_number)
                payload = {
                    'BusinessShortCode': self.shortcode,
                    'Password': build_password(
                        shortcode=self.shortcode, passkey=self.passkey, timestamp=timestamp
                    ),
                    'Timestamp': timestamp,
                    'TransactionType': self.transaction_type,
                    'Amount': amount,
                    'PartyA': msisdn,
                    'PartyB': self.shortcode,
                    'PhoneNumber': msisdn,
                    'CallBackURL': self.callback_url,
                    'AccountReference': order_id,
                    'TransactionDesc': f'Payment for order {order_id}',
                }

                with metrics.gateway_request_duration.labels(operation='stk_push').time():
                    response = await self._client.post(
                        '/mpesa/stkpush/v1/processrequest',
                        json=payload,
                        headers={'Authorization': f'Bearer {token}'},
                    )
                data = self._json_body(response)
            except (httpx.HTTPError, ValueError) as e:
                Logger.base.exception(f'💥 [MPESA] STK push for order {order_id} crashed: {e}')
                return PaymentInitiationResult(success=False, error=UNEXPECTED_ERROR_MESSAGE)

            response_code = data.get('ResponseCode')
            if response.is_success and (response_code == '0' or not response_code):
                checkout_request_id = data.get('CheckoutRequestID')
                span.set_attribute('mpesa.checkout_request_id', checkout_request_id or '')
                Logger.base.info(
                    f'📲 [MPESA] STK push sent for order {order_id} -> {checkout_request_id}'
                )
                return PaymentInitiationResult(
                    success=True, checkout_request_id=checkout_request_id
                )

            error = data.get('errorMessage') or INITIATION_FAILED_MESSAGE
            Logger.base.warning(
                f'⚠️ [MPESA] STK push rejected for order {order_id}: '
                f'HTTP {response.status_code} {data}'
            )
            return PaymentInitiationResult(success=False, error=error)

    @Logger.io
    async def query_status(self, *, checkout_request_id: str) -> GatewayStatusResult:
        with self.tracer.start_as_current_span(
            'gateway.mpesa.stk_query', attributes={'mpesa.checkout_request_id': checkout_request_id}
        ):
            if not self._is_configured():
                return GatewayStatusResult()

            try:
                token = await self._get_access_token()
                if not token:
                    return GatewayStatusResult()

                timestamp = self._timestamp()
                with metrics.gateway_request_duration.labels(operation='stk_query').time():
                    response = await self._client.post(
                        '/mpesa/stkpushquery/v1/query',
                        json={
                            'BusinessShortCode': self.shortcode,
                            'Password': build_password(
                                shortcode=self.shortcode, passkey=self.passkey, timestamp=timestamp
                            ),
                            'Timestamp': timestamp,
                            'CheckoutRequestID': checkout_request_id,
                        },
                        headers={'Authorization': f'Bearer {token}'},
                    )
                data = self._json_body(response)
            except (httpx.HTTPError, ValueError) as e:
                Logger.base.warning(f'⚠️ [MPESA] STK query for {checkout_request_id} failed: {e}')
                return GatewayStatusResult()

            # Still processing: Daraja answers with an errorCode and no ResultCode
            result_code = data.get('ResultCode')
            if result_code is None or str(result_code).strip() == '':
                return GatewayStatusResult()

            try:
                code = int(result_code)
            except (TypeError, ValueError):
                return GatewayStatusResult()
            return GatewayStatusResult(result_code=code, result_desc=data.get('ResultDesc'))

    async def aclose(self) -> None:
        await self._client.aclose()
