"""Model <-> entity conversion shared by the command and query repositories."""

from typing import Any, Optional

from src.platform.database.orm_db_setting import ensure_utc
from src.service.checkout.domain.entity.listing_entity import (
    FreeMerch,
    Listing,
    ListingType,
    TicketType,
)
from src.service.checkout.domain.entity.order_entity import (
    DeviceInfo,
    Order,
    OrderStatus,
    OrderTicketLine,
    PaymentType,
    SalesChannel,
)
from src.service.checkout.domain.entity.promocode_entity import Promocode
from src.service.checkout.domain.entity.transaction_entity import (
    PaymentMethod,
    Transaction,
    TransactionStatus,
)
from src.service.checkout.driven_adapter.model.listing_model import ListingModel
from src.service.checkout.driven_adapter.model.order_model import OrderModel
from src.service.checkout.driven_adapter.model.promocode_model import PromocodeModel
from src.service.checkout.driven_adapter.model.transaction_model import TransactionModel


def free_merch_to_dict(free_merch: Optional[FreeMerch]) -> Optional[dict[str, Any]]:
    if free_merch is None:
        return None
    return {'product_id': free_merch.product_id, 'product_name': free_merch.product_name}


def free_merch_from_dict(data: Optional[dict[str, Any]]) -> Optional[FreeMerch]:
    if not data:
        return None
    return FreeMerch(product_id=str(data['product_id']), product_name=str(data['product_name']))


def to_listing_entity(db_listing: ListingModel) -> Listing:
    return Listing(
        id=db_listing.id,
        name=db_listing.name,
        organizer_id=db_listing.organizer_id,
        listing_type=ListingType(db_listing.listing_type),
        ticket_types=[
            TicketType(
                name=t.name,
                price=t.price,
                quantity=t.quantity,
                tickets_sold=t.tickets_sold,
            )
            for t in db_listing.ticket_types
        ],
        total_tickets_sold=db_listing.total_tickets_sold,
        total_revenue=db_listing.total_revenue,
        free_merch=free_merch_from_dict(db_listing.free_merch),
        created_at=ensure_utc(db_listing.created_at),
        updated_at=ensure_utc(db_listing.updated_at),
    )


def to_order_model(order: Order) -> OrderModel:
    return OrderModel(
        id=order.id,
        listing_id=order.listing_id,
        organizer_id=order.organizer_id,
        listing_type=order.listing_type.value,
        payment_type=order.payment_type.value,
        user_id=order.user_id,
        user_name=order.user_name,
        user_email=order.user_email,
        user_phone=order.user_phone,
        tickets=[
            {'name': line.name, 'quantity': line.quantity, 'price': line.price}
            for line in order.tickets
        ],
        subtotal=order.subtotal,
        discount=order.discount,
        platform_fee=order.platform_fee,
        processing_fee=order.processing_fee,
        total=order.total,
        status=order.status.value,
        channel=order.channel.value,
        device_info=(
            {
                'user_agent': order.device_info.user_agent,
                'ip_address': order.device_info.ip_address,
            }
            if order.device_info
            else None
        ),
        promocode_id=order.promocode_id,
        tracking_link_id=order.tracking_link_id,
        free_merch=free_merch_to_dict(order.free_merch),
        inventory_released=order.inventory_released,
        created_at=order.created_at,
        updated_at=order.updated_at,
    )


def to_order_entity(db_order: OrderModel) -> Order:
    device_info = db_order.device_info or None
    return Order(
        id=db_order.id,
        listing_id=db_order.listing_id,
        organizer_id=db_order.organizer_id,
        listing_type=ListingType(db_order.listing_type),
        payment_type=PaymentType(db_order.payment_type),
        user_id=db_order.user_id,
        user_name=db_order.user_name,
        user_email=db_order.user_email,
        user_phone=db_order.user_phone,
        tickets=[
            OrderTicketLine(
                name=line['name'], quantity=int(line['quantity']), price=float(line['price'])
            )
            for line in db_order.tickets or []
        ],
        subtotal=db_order.subtotal,
        discount=db_order.discount,
        platform_fee=db_order.platform_fee,
        processing_fee=db_order.processing_fee,
        total=db_order.total,
        status=OrderStatus(db_order.status),
        channel=SalesChannel(db_order.channel),
        device_info=(
            DeviceInfo(
                user_agent=device_info.get('user_agent', ''),
                ip_address=device_info.get('ip_address', ''),
            )
            if device_info
            else None
        ),
        promocode_id=db_order.promocode_id,
        tracking_link_id=db_order.tracking_link_id,
        free_merch=free_merch_from_dict(db_order.free_merch),
        inventory_released=db_order.inventory_released,
        created_at=ensure_utc(db_order.created_at),
        updated_at=ensure_utc(db_order.updated_at),
    )


def to_transaction_model(transaction: Transaction) -> TransactionModel:
    return TransactionModel(
        id=transaction.id,
        order_id=transaction.order_id,
        user_id=transaction.user_id,
        amount=transaction.amount,
        status=transaction.status.value,
        method=transaction.method.value,
        mpesa_checkout_request_id=transaction.mpesa_checkout_request_id,
        mpesa_callback_data=transaction.mpesa_callback_data,
        mpesa_confirmation_code=transaction.mpesa_confirmation_code,
        mpesa_transaction_date=transaction.mpesa_transaction_date,
        mpesa_payer_phone_number=transaction.mpesa_payer_phone_number,
        fail_reason=transaction.fail_reason,
        retry_count=transaction.retry_count,
        ip_address=transaction.ip_address,
        created_at=transaction.created_at,
        updated_at=transaction.updated_at,
    )


def to_transaction_entity(db_transaction: TransactionModel) -> Transaction:
    return Transaction(
        id=db_transaction.id,
        order_id=db_transaction.order_id,
        user_id=db_transaction.user_id,
        amount=db_transaction.amount,
        status=TransactionStatus(db_transaction.status),
        method=PaymentMethod(db_transaction.method),
        mpesa_checkout_request_id=db_transaction.mpesa_checkout_request_id,
        mpesa_callback_data=db_transaction.mpesa_callback_data,
        mpesa_confirmation_code=db_transaction.mpesa_confirmation_code,
        mpesa_transaction_date=db_transaction.mpesa_transaction_date,
        mpesa_payer_phone_number=db_transaction.mpesa_payer_phone_number,
        fail_reason=db_transaction.fail_reason,
        retry_count=db_transaction.retry_count,
        ip_address=db_transaction.ip_address,
        created_at=ensure_utc(db_transaction.created_at),
        updated_at=ensure_utc(db_transaction.updated_at),
    )


def to_promocode_entity(db_promocode: PromocodeModel) -> Promocode:
    return Promocode(
        id=db_promocode.id,
        code=db_promocode.code,
        discount_type=db_promocode.discount_type,
        discount_value=db_promocode.discount_value,
        listing_id=db_promocode.listing_id,
        is_active=db_promocode.is_active,
        usage_count=db_promocode.usage_count,
        usage_limit=db_promocode.usage_limit,
        expires_at=ensure_utc(db_promocode.expires_at),
        revenue_generated=db_promocode.revenue_generated,
    )
