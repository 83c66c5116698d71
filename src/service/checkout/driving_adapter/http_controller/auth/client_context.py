from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Depends, Request
import orjson

from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.service.checkout.app.dto.checkout_dto import ClientContext
from src.service.checkout.domain.entity.rate_limit_entity import UNKNOWN_CLIENT
from src.service.checkout.driving_adapter.http_controller.auth.session_auth import SessionAuth


def get_client_ip(request: Request) -> str:
    forwarded_for = request.headers.get('x-forwarded-for')
    if forwarded_for:
        first_hop = forwarded_for.split(',')[0].strip()
        if first_hop:
            return first_hop

    cf_connecting_ip = request.headers.get('cf-connecting-ip')
    if cf_connecting_ip and cf_connecting_ip.strip():
        return cf_connecting_ip.strip()

    if request.client and request.client.host:
        return request.client.host
    return UNKNOWN_CLIENT


def parse_tracker_cookie(raw: Optional[str]) -> tuple[Optional[str], Optional[str]]:
    """`nak_tracker` = {"promocodeId": ..., "trackingLinkId": ...} -> (promocode_id, link_id)"""
    if not raw:
        return None, None
    try:
        data = orjson.loads(raw)
    except orjson.JSONDecodeError:
        Logger.base.warning('🔗 [TRACKER] Failed to parse tracking cookie')
        return None, None
    if not isinstance(data, dict):
        return None, None

    promocode_id = data.get('promocodeId')
    tracking_link_id = data.get('trackingLinkId')
    return (
        str(promocode_id) if promocode_id else None,
        str(tracking_link_id) if tracking_link_id else None,
    )


@inject
async def get_optional_user_id(
    request: Request,
    session_auth: SessionAuth = Depends(Provide[Container.session_auth]),
) -> Optional[str]:
    return session_auth.user_id_from_request(request)


async def get_client_context(
    request: Request,
    user_id: Optional[str] = Depends(get_optional_user_id),
) -> ClientContext:
    tracker_promocode_id, tracker_link_id = parse_tracker_cookie(
        request.cookies.get(settings.TRACKER_COOKIE_NAME)
    )
    return ClientContext(
        ip_address=get_client_ip(request),
        user_agent=request.headers.get('user-agent', ''),
        user_id=user_id,
        tracker_promocode_id=tracker_promocode_id,
        tracker_link_id=tracker_link_id,
    )
