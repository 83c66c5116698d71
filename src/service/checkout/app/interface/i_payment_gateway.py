"""
Payment Gateway Interface (M-Pesa STK push)

Implementations never raise for provider or configuration problems; they
return a structured failure the orchestrator can report to the buyer.
"""

from abc import ABC, abstractmethod

from src.service.checkout.app.dto.payment_dto import GatewayStatusResult, PaymentInitiationResult


class IPaymentGateway(ABC):
    @abstractmethod
    async def initiate(
        self, *, phone_number: str, amount: int, order_id: str
    ) -> PaymentInitiationResult:
        """
        Send the payment prompt to the buyer's phone.

        Args:
            phone_number: Buyer phone in any local format (07..., +2547..., 2547...)
            amount: Whole shillings
            order_id: Used as the account reference
        """
        pass

    @abstractmethod
    async def query_status(self, *, checkout_request_id: str) -> GatewayStatusResult:
        pass

    @abstractmethod
    async def aclose(self) -> None:
        pass
