"""Monthly diesel price series."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Sequence

from .calculator import percentage_change
from .models import first_of_month


@dataclass(frozen=True)
class DieselPrice:
    price_date: date
    price_per_liter: Decimal


@dataclass(frozen=True)
class DieselPriceChange:
    period_month: date
    previous_price: Decimal
    new_price: Decimal
    from_base_price: bool

    @property
    def percentage_change(self) -> Decimal:
        return percentage_change(self.previous_price, self.new_price)


def price_change_for(prices: Sequence[DieselPrice], period_month: date, base_price: Decimal) -> DieselPriceChange:
    """Return the price movement into ``period_month``.

    The new price is the latest price dated within the period; the previous
    price is the latest price dated before it. With no earlier price the
    policy's base price is used.
    """
    period = first_of_month(period_month)
    ordered = sorted(prices, key=lambda p: p.price_date)

    current = [p for p in ordered if first_of_month(p.price_date) == period]
    if not current:
        raise LookupError(f"No diesel price recorded for {period:%Y-%m}")
    new_price = current[-1]

    earlier = [p for p in ordered if p.price_date < period]
    if earlier:
        return DieselPriceChange(period, earlier[-1].price_per_liter, new_price.price_per_liter, False)
    return DieselPriceChange(period, base_price, new_price.price_per_liter, True)
