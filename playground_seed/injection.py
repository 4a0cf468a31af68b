"""Data-quality defect injection.

Builders hand every value that may be corrupted to an ``ErrorInjectionPolicy``.
Each call is one Bernoulli trial at the category's rate, so corrupted counts
scatter around ``rate% of N`` rather than matching it exactly. Categories are
independent of one another. With the config disabled every rate is 0 and the
policy hands values back untouched.
"""

from __future__ import annotations

import datetime as dt
import logging
from collections import Counter
from decimal import Decimal
from typing import Dict, Optional, Sequence, Tuple

from .config import ERROR_CATEGORIES, ErrorConfig
from .primitives import RandomSource, UniqueValues, corrupt_email, corrupt_price, corrupt_quantity

DateOrNone = Optional[dt.date]


class ErrorInjectionPolicy:
    def __init__(self, error_config: ErrorConfig, src: RandomSource):
        self.error_config = error_config
        self.src = src
        self.rates: Dict[str, float] = {c: error_config.rate(c) for c in ERROR_CATEGORIES}
        self.injected: Counter = Counter()
        self.trials: Counter = Counter()

    @property
    def enabled(self) -> bool:
        return any(r > 0 for r in self.rates.values())

    def should_inject(self, category: str) -> bool:
        rate = self.rates[category]
        if rate <= 0:
            return False
        self.trials[category] += 1
        if self.src.chance(rate):
            self.injected[category] += 1
            return True
        return False

    def email(self, email: str, registry: UniqueValues) -> str:
        """Maybe corrupt an email already registered in ``registry``.

        The corrupted string replaces the clean one in the registry so the
        UNIQUE column still accepts it.
        """
        if not self.should_inject("email"):
            return email
        for _ in range(8):
            bad = corrupt_email(self.src, email)
            if bad not in registry:
                break
        else:
            bad = f"{corrupt_email(self.src, email)}{len(registry)}"
        registry.seen.discard(email)
        registry.add(bad)
        return bad

    def location(self, correct_country_id: int, country_ids: Sequence[int]) -> int:
        # no trial when there is no wrong country to pick
        others = [c for c in country_ids if c != correct_country_id]
        if not others or not self.should_inject("location"):
            return correct_country_id
        return self.src.choice(others)

    def price(self, price: Decimal) -> Decimal:
        if not self.should_inject("pricing"):
            return price
        return corrupt_price(self.src)

    def quantity(self, quantity: int) -> int:
        if not self.should_inject("quantity"):
            return quantity
        return corrupt_quantity(self.src)

    def delivery(
        self,
        status: str,
        order_date: dt.date,
        estimated_delivery: DateOrNone,
        delivery_date: DateOrNone,
    ) -> Tuple[DateOrNone, DateOrNone]:
        variants = []
        if status == "delivered" and delivery_date is not None:
            variants.append("delivered_without_date")
        if status in ("pending", "delivered"):
            variants.append("missing_estimate")
        if status == "cancelled":
            variants.append("cancelled_with_dates")
        if not variants or not self.should_inject("delivery"):
            return estimated_delivery, delivery_date

        kind = self.src.choice(variants)
        if kind == "delivered_without_date":
            return estimated_delivery, None
        if kind == "missing_estimate":
            return None, delivery_date
        estimated = order_date + dt.timedelta(days=self.src.randint(3, 14))
        delivered = None
        if self.src.random() < 0.5:
            delivered = order_date + dt.timedelta(days=self.src.randint(5, 20))
        return estimated, delivered

    def log_summary(self, expected: Dict[str, int]) -> None:
        if not self.enabled:
            return
        logging.info("Data quality errors injected:")
        for category in ERROR_CATEGORIES:
            rate = self.rates[category]
            if rate <= 0:
                continue
            logging.info(
                "  %s: %d of %d candidates (rate=%g%%, expected ~%d)",
                category,
                self.injected[category],
                self.trials[category],
                rate,
                round(expected.get(category, self.trials[category]) * rate / 100),
            )
