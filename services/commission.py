"""
Booking money math.

Amounts at rest are Decimals in major units (rupees); the gateway works in
integer minor units (paise). Commission and payout are kept exact until the
Payment row is written, where they are quantized to paise.
"""
from collections import namedtuple
from decimal import Decimal, ROUND_HALF_UP

MINOR_UNITS = 100
PAISE = Decimal("0.01")
DEFAULT_COMMISSION_PERCENT = Decimal("10")

CommissionSplit = namedtuple("CommissionSplit", ["amount", "platform_commission", "advisor_payout"])


def to_decimal(value) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        # go through str so 0.1 stays 0.1
        return Decimal(str(value))
    return Decimal(value)


def booking_amount(hourly_rate, duration_minutes) -> Decimal:
    """hourly_rate * duration_minutes / 60, unrounded."""
    return to_decimal(hourly_rate) * Decimal(int(duration_minutes)) / Decimal(60)


def to_minor_units(amount) -> int:
    return int((to_decimal(amount) * MINOR_UNITS).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def to_major_units(amount_minor) -> Decimal:
    return (Decimal(int(amount_minor)) / MINOR_UNITS).quantize(PAISE)


def quantize_money(amount) -> Decimal:
    return to_decimal(amount).quantize(PAISE, rounding=ROUND_HALF_UP)


def split_commission(amount, percent=DEFAULT_COMMISSION_PERCENT) -> CommissionSplit:
    amount = to_decimal(amount)
    percent = to_decimal(percent)
    if percent < 0 or percent > 100:
        raise ValueError("commission percent must be between 0 and 100")

    platform_commission = amount * percent / Decimal(100)
    return CommissionSplit(amount, platform_commission, amount - platform_commission)


def split_for_storage(amount, percent=DEFAULT_COMMISSION_PERCENT) -> CommissionSplit:
    """
    Quantized split for persistence. The payout is derived from the rounded
    commission so the stored parts always add up to the stored amount.
    """
    amount = quantize_money(amount)
    commission = quantize_money(split_commission(amount, percent).platform_commission)
    return CommissionSplit(amount, commission, amount - commission)
