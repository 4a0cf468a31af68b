from __future__ import annotations

import datetime as dt
import re
from decimal import Decimal
from typing import Callable, List, Optional, Sequence, Set, TypeVar

import numpy as np
from faker import Faker

from .catalogs import (
    EMAIL_DOMAINS,
    EMAIL_SEPARATORS,
    PRODUCT_ADJECTIVES,
    PRODUCT_BENEFITS,
    PRODUCT_FEATURES,
    PRODUCT_MODELS,
    PRODUCT_NOUNS,
)
from .errors import UniquenessExhaustedError

T = TypeVar("T")

MAX_UNIQUE_ATTEMPTS = 1000
CENT = Decimal("0.01")

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[A-Za-z]{2,}$"
_EMAIL_RE = re.compile(EMAIL_PATTERN)
_TLD_RE = re.compile(r"\.([A-Za-z]+)$")


def is_valid_email(value: Optional[str]) -> bool:
    return bool(value) and _EMAIL_RE.match(value) is not None


def money(value) -> Decimal:
    return Decimal(value).quantize(CENT)


class RandomSource:
    """Per-run randomness: a seeded Faker for scalar draws, numpy for trials and sampling."""

    def __init__(self, seed: Optional[int] = None):
        self.fake = Faker()
        self.fake.seed_instance(seed)
        self.np = np.random.RandomState(None if seed is None else seed % (2 ** 32))

    def randint(self, low: int, high: int) -> int:
        return self.fake.random_int(min=low, max=high)

    def choice(self, pool: Sequence[T]) -> T:
        return pool[self.fake.random_int(min=0, max=len(pool) - 1)]

    def random(self) -> float:
        return self.fake.random.random()

    def chance(self, percent: float) -> bool:
        return float(self.np.rand()) * 100.0 < percent

    def date_between(self, start: dt.date, end: dt.date) -> dt.date:
        return start + dt.timedelta(days=self.randint(0, (end - start).days))

    def sample_indices(self, pool_size: int, count: int) -> List[int]:
        # distinct while the pool lasts, repeats only for the overflow
        distinct = min(pool_size, count)
        picked = [int(i) for i in self.np.choice(pool_size, size=distinct, replace=False)]
        if count > distinct:
            picked.extend(int(i) for i in self.np.choice(pool_size, size=count - distinct, replace=True))
        return picked


class UniqueValues:
    def __init__(self, kind: str, max_attempts: int = MAX_UNIQUE_ATTEMPTS):
        self.kind = kind
        self.max_attempts = max_attempts
        self.seen: Set[str] = set()

    def __contains__(self, value: str) -> bool:
        return value in self.seen

    def __len__(self) -> int:
        return len(self.seen)

    def add(self, value: str) -> bool:
        if value in self.seen:
            return False
        self.seen.add(value)
        return True

    def draw(self, make: Callable[[], str], fallback: Callable[[], str]) -> str:
        for _ in range(self.max_attempts):
            value = make()
            if self.add(value):
                return value
        value = fallback()
        if not self.add(value):
            raise UniquenessExhaustedError(self.kind, self.max_attempts, value)
        return value


def make_email(src: RandomSource, first_name: str, last_name: str) -> str:
    number = str(src.randint(1, 999)) if src.random() > 0.7 else ""
    sep = src.choice(EMAIL_SEPARATORS)
    return f"{first_name.lower()}{sep}{last_name.lower()}{number}@{src.choice(EMAIL_DOMAINS)}"


def fallback_email(first_name: str, last_name: str, index: int) -> str:
    domain = EMAIL_DOMAINS[index % len(EMAIL_DOMAINS)]
    return f"{first_name.lower()}.{last_name.lower()}.{index}@{domain}"


def make_product_name(src: RandomSource) -> str:
    name = f"{src.choice(PRODUCT_ADJECTIVES)} {src.choice(PRODUCT_NOUNS)}"
    if src.random() > 0.6:
        name += f" {src.choice(PRODUCT_MODELS)}"
    return name


def fallback_product_name(src: RandomSource, index: int) -> str:
    return f"{src.choice(PRODUCT_ADJECTIVES)} {src.choice(PRODUCT_NOUNS)} #{index}"


def make_description(src: RandomSource, name: str) -> str:
    return f"{name} with {src.choice(PRODUCT_FEATURES)}, {src.choice(PRODUCT_BENEFITS)}."


def make_price(src: RandomSource, low: int = 5, high: int = 2000) -> Decimal:
    cents = src.randint(low * 100, high * 100)
    return money(Decimal(cents) / 100)


# Email defects. Each returns a value that fails the checks a clean row passes.

def _strip_at(email: str) -> str:
    return email.replace("@", "", 1)


def _corrupt_tld(email: str) -> str:
    m = _TLD_RE.search(email)
    if not m:
        return email + "."
    tld = m.group(1)
    bad = tld[0] + "0" + tld[2:] if len(tld) > 1 else tld + "0"
    return email[: m.start(1)] + bad


def _double_at(email: str) -> str:
    return email.replace("@", "@@", 1)


def _drop_tld(email: str) -> str:
    m = _TLD_RE.search(email)
    if not m:
        return email + "."
    return email[: m.start()]


def _trailing_dot(email: str) -> str:
    return email + "."


EMAIL_DEFECTS = (
    ("missing_at", _strip_at),
    ("bad_tld", _corrupt_tld),
    ("double_at", _double_at),
    ("missing_tld", _drop_tld),
    ("trailing_dot", _trailing_dot),
)


def corrupt_email(src: RandomSource, email: str) -> str:
    _, defect = src.choice(EMAIL_DEFECTS)
    return defect(email)


def corrupt_price(src: RandomSource) -> Decimal:
    kind = src.randint(0, 2)
    if kind == 0:
        return money(-src.randint(1, 100))
    if kind == 1:
        return money(src.randint(10001, 50000))
    return money(0)


def corrupt_quantity(src: RandomSource) -> int:
    if src.randint(0, 1) == 0:
        return 0
    return -src.randint(1, 5)
