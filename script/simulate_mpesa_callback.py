#!/usr/bin/env python3
"""
Simulate a Daraja STK callback against a running service

Usage:
    python script/simulate_mpesa_callback.py <checkout_request_id> [result_code]

result_code 0 settles the order; anything else fails it (1032 = cancelled by user).
The checkout request id is printed by the mock gateway when the push is made.
"""

import asyncio
from datetime import datetime
import sys

import httpx

from src.platform.config.core_setting import settings


RESULT_DESCRIPTIONS = {
    0: 'The service request is processed successfully.',
    1: 'The balance is insufficient for the transaction.',
    1032: 'Request cancelled by user',
    1037: 'DS timeout user cannot be reached',
    2001: 'The initiator information is invalid.',
}


def build_callback(checkout_request_id: str, result_code: int) -> dict:
    callback = {
        'MerchantRequestID': 'simulated',
        'CheckoutRequestID': checkout_request_id,
        'ResultCode': result_code,
        'ResultDesc': RESULT_DESCRIPTIONS.get(result_code, 'Simulated failure'),
    }
    if result_code == 0:
        callback['CallbackMetadata'] = {
            'Item': [
                {'Name': 'MpesaReceiptNumber', 'Value': 'SIM' + checkout_request_id[-7:].upper()},
                {'Name': 'TransactionDate', 'Value': int(datetime.now().strftime('%Y%m%d%H%M%S'))},
                {'Name': 'PhoneNumber', 'Value': 254712345678},
            ]
        }
    return {'Body': {'stkCallback': callback}}


async def main(checkout_request_id: str, result_code: int) -> None:
    secret = settings.MPESA_CALLBACK_SECRET.get_secret_value()
    async with httpx.AsyncClient(base_url=settings.APP_URL) as client:
        response = await client.post(
            f'/api/mpesa-callback/{secret}', json=build_callback(checkout_request_id, result_code)
        )
    print(f'📨 {response.status_code} {response.text}')


if __name__ == '__main__':
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)
    asyncio.run(main(sys.argv[1], int(sys.argv[2]) if len(sys.argv) > 2 else 0))
