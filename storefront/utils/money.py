# storefront/utils/money.py

from decimal import Decimal, ROUND_HALF_UP

Money = Decimal

ZERO = Decimal("0")
CENT = Decimal("0.01")
# largest amount accepted from requests or settings
MAX_AMOUNT = Decimal("1000000000000")

def D(x) -> Money:
    return x if isinstance(x, Decimal) else Decimal(str(x or "0"))

def round_money(x) -> Money:
    return D(x).quantize(CENT, rounding=ROUND_HALF_UP)

def non_negative(x) -> Money:
    x = D(x)
    return x if x > 0 else ZERO

def money_float(x) -> float:
    # "+ 0.0" folds -0.0 into 0.0 so JSON stays stable
    return float(round_money(x)) + 0.0

def optional_money_float(x):
    return None if x is None else money_float(x)
