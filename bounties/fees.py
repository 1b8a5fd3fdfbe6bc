from decimal import ROUND_HALF_UP, Decimal

from django.conf import settings

CENT = Decimal("0.01")


def calculate_platform_fee(amount, rate=None):
    """Platform fee for a payout amount, rounded half-up to cents."""
    if rate is None:
        rate = settings.PLATFORM_FEE_RATE
    fee = Decimal(str(amount)) * Decimal(str(rate))
    return fee.quantize(CENT, rounding=ROUND_HALF_UP)
