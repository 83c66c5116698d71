"""
M-Pesa failure translation

Turns the raw ResultDesc stored on a failed transaction into a message a buyer
can act on. Codes come from the Daraja STK push result codes; the phrases are
the descriptions Daraja sends with them.
"""

from typing import Optional


UNKNOWN_ERROR_MESSAGE = 'An unknown error occurred.'

# Checked in order; the first rule with a fragment found in the raw reason wins
_KNOWN_FAILURES: tuple[tuple[tuple[str, ...], str], ...] = (
    (
        ('1032', 'cancelled by user'),
        "You cancelled the M-Pesa request on your phone. Please try again when you're ready.",
    ),
    (
        ('1037', 'ds timeout', 'cannot be reached'),
        'Oops! The M-Pesa prompt on your phone timed out. '
        'Please try again and enter your PIN more quickly.',
    ),
    (
        ('2001', 'balance is insufficient'),
        'You have insufficient funds in your M-Pesa account to complete this transaction.',
    ),
    (
        ('the transaction is already in process',),
        'Another payment is already in progress for this order. '
        'Please wait a moment for it to complete.',
    ),
)


def translate_mpesa_error(reason: Optional[str]) -> str:
    if not reason:
        return UNKNOWN_ERROR_MESSAGE

    lowered = reason.lower()
    for fragments, message in _KNOWN_FAILURES:
        if any(fragment in lowered for fragment in fragments):
            return message

    return reason
