import attrs


@attrs.define(frozen=True)
class ManualPaymentInstructions:
    """Paybill fallback shown after the automated STK attempts run out."""

    business_number: str
    account_number: str
    amount: float

    @property
    def steps(self) -> list[str]:
        return [
            'Go to M-Pesa Menu > Lipa na M-Pesa > Pay Bill',
            f'Enter Business no. {self.business_number}',
            f'Enter Account no. {self.account_number}',
            f'Enter Amount Ksh {self.amount:,.2f}',
            'Enter your M-Pesa PIN and confirm',
        ]

    @classmethod
    def for_order(
        cls, *, shortcode: str, order_id: str, total: float
    ) -> 'ManualPaymentInstructions':
        return cls(business_number=shortcode, account_number=order_id, amount=total)
