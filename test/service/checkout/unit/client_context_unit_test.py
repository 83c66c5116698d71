"""
Unit tests for the HTTP client context helpers

Tests:
- Client IP resolution order: X-Forwarded-For first hop, CF-Connecting-IP, socket peer
- Tracker cookie parsing
- Session cookie decoding (valid, expired, forged, missing claims)
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Request
import jwt
import pytest

from src.platform.config.core_setting import settings
from src.service.checkout.driving_adapter.http_controller.auth.client_context import (
    get_client_ip,
    parse_tracker_cookie,
)
from src.service.checkout.driving_adapter.http_controller.auth.session_auth import SessionAuth


def _request(
    headers: Optional[dict[str, str]] = None, client: Optional[tuple[str, int]] = None
) -> Request:
    scope = {
        'type': 'http',
        'method': 'POST',
        'path': '/api/checkout/orders',
        'headers': [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()],
        'client': client,
    }
    return Request(scope)


def _session(claims: dict, secret: Optional[str] = None) -> str:
    return jwt.encode(
        claims,
        secret or settings.SECRET_KEY.get_secret_value(),
        algorithm=settings.ALGORITHM,
    )


@pytest.mark.unit
class TestGetClientIp:
    def test_first_forwarded_hop_wins(self):
        request = _request(
            {'x-forwarded-for': '41.90.64.12, 10.0.0.1', 'cf-connecting-ip': '102.0.0.9'},
            client=('127.0.0.1', 5000),
        )

        assert get_client_ip(request) == '41.90.64.12'

    def test_cloudflare_header_when_not_forwarded(self):
        request = _request({'cf-connecting-ip': ' 102.0.0.9 '}, client=('127.0.0.1', 5000))

        assert get_client_ip(request) == '102.0.0.9'

    def test_socket_peer_as_last_resort(self):
        assert get_client_ip(_request(client=('197.232.1.1', 5000))) == '197.232.1.1'

    def test_unknown_without_any_source(self):
        assert get_client_ip(_request()) == 'unknown'


@pytest.mark.unit
class TestParseTrackerCookie:
    def test_both_ids(self):
        raw = '{"promocodeId": "promo-1", "trackingLinkId": "link-9"}'

        assert parse_tracker_cookie(raw) == ('promo-1', 'link-9')

    def test_link_without_promocode(self):
        assert parse_tracker_cookie('{"trackingLinkId": "link-9"}') == (None, 'link-9')

    @pytest.mark.parametrize('raw', [None, '', 'not json', '["a", "b"]'])
    def test_unusable_cookie_is_ignored(self, raw):
        assert parse_tracker_cookie(raw) == (None, None)


@pytest.mark.unit
class TestSessionAuth:
    def test_user_id_claim(self):
        assert SessionAuth().decode_user_id(_session({'user_id': 'user-7'})) == 'user-7'

    def test_sub_claim(self):
        assert SessionAuth().decode_user_id(_session({'sub': 'user-8'})) == 'user-8'

    def test_missing_token_is_guest(self):
        assert SessionAuth().decode_user_id(None) is None

    def test_forged_token_is_guest(self):
        token = _session({'user_id': 'user-7'}, secret='not-the-real-secret-at-all-xxxxxx')

        assert SessionAuth().decode_user_id(token) is None

    def test_expired_token_is_guest(self):
        token = _session(
            {'user_id': 'user-7', 'exp': datetime.now(timezone.utc) - timedelta(minutes=5)}
        )

        assert SessionAuth().decode_user_id(token) is None

    def test_token_without_identity_is_guest(self):
        assert SessionAuth().decode_user_id(_session({'role': 'buyer'})) is None

    def test_cookie_is_read_from_request(self):
        token = _session({'user_id': 'user-7'})
        request = _request({'cookie': f'{settings.SESSION_COOKIE_NAME}={token}'})

        assert SessionAuth().user_id_from_request(request) == 'user-7'
