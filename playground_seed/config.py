"""Generation settings: dataset sizes, date window, defect rates and presets.

``GenerationConfig.from_dict`` accepts the camelCase shape posted by the setup
dialog (``orderItemsPerOrder``, ``dateRange``, ``errorConfig``) as well as
snake_case keys. ``validate`` returns a normalized copy or raises
``ConfigurationError``; nothing touches the database before it passes.
"""

from __future__ import annotations

import datetime as dt
import numbers
import os
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Dict, Mapping, Optional, Tuple

from .catalogs import CITY_DATA, COUNTRY_DATA, eligible_cities
from .errors import ConfigurationError

ERROR_CATEGORIES: Tuple[str, ...] = ("email", "delivery", "pricing", "location", "quantity")

MAX_ERROR_PERCENT = 100.0
MAX_CHALLENGE_RATE = 50


def today_utc() -> dt.date:
    return dt.datetime.now(dt.timezone.utc).date()


def years_before(day: dt.date, years: int) -> dt.date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 on a non-leap target year
        return day.replace(year=day.year - years, day=28)


def _parse_date(value: Any, name: str) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    if isinstance(value, dt.date):
        return value
    if isinstance(value, str):
        try:
            return dt.date.fromisoformat(value.strip()[:10])
        except ValueError as exc:
            raise ConfigurationError(f"{name} must be a YYYY-MM-DD date, got {value!r}") from exc
    raise ConfigurationError(f"{name} must be a date, got {type(value).__name__}")


def _require_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")
    return int(value)


def _require_percent(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise ConfigurationError(f"{name} must be a number, got {value!r}")
    v = float(value)
    if not 0.0 <= v <= MAX_ERROR_PERCENT:
        raise ConfigurationError(f"{name} must be within [0, {MAX_ERROR_PERCENT:g}], got {v:g}")
    return v


@dataclass(frozen=True)
class ItemsPerOrder:
    min: int = 1
    max: int = 5


@dataclass(frozen=True)
class DateRange:
    start: Optional[dt.date] = None
    end: Optional[dt.date] = None


def dynamic_date_range(today: Optional[dt.date] = None) -> DateRange:
    end = today or today_utc()
    return DateRange(start=years_before(end, 2), end=end)


@dataclass(frozen=True)
class ErrorConfig:
    enabled: bool = False
    email_errors: float = 0.0
    delivery_errors: float = 0.0
    pricing_errors: float = 0.0
    location_errors: float = 0.0
    quantity_errors: float = 0.0

    def rate(self, category: str) -> float:
        if category not in ERROR_CATEGORIES:
            raise KeyError(category)
        if not self.enabled:
            return 0.0
        return float(getattr(self, f"{category}_errors"))

    def validate(self) -> "ErrorConfig":
        if not isinstance(self.enabled, bool):
            raise ConfigurationError(f"errorConfig.enabled must be a boolean, got {self.enabled!r}")
        values = {f"{c}_errors": _require_percent(getattr(self, f"{c}_errors"), f"errorConfig.{c}Errors") for c in ERROR_CATEGORIES}
        return replace(self, **values)


# Rates the setup dialog proposes once challenge mode is switched on.
DEFAULT_CHALLENGE_RATES = ErrorConfig(
    enabled=True,
    email_errors=10,
    delivery_errors=8,
    pricing_errors=5,
    location_errors=7,
    quantity_errors=3,
)


@dataclass(frozen=True)
class GenerationConfig:
    countries: int = 25
    cities: int = 50
    users: int = 100
    products: int = 100
    orders: int = 500
    order_items_per_order: ItemsPerOrder = field(default_factory=ItemsPerOrder)
    date_range: Optional[DateRange] = None
    error_config: ErrorConfig = field(default_factory=ErrorConfig)

    def validate(self, today: Optional[dt.date] = None) -> "GenerationConfig":
        counts = {}
        for name in ("countries", "cities", "users", "products", "orders"):
            v = _require_int(getattr(self, name), name)
            if v < 0:
                raise ConfigurationError(f"{name} must not be negative, got {v}")
            counts[name] = v
        counts["countries"] = min(counts["countries"], len(COUNTRY_DATA))
        counts["cities"] = min(counts["cities"], len(CITY_DATA))

        items = self.order_items_per_order
        lo = _require_int(items.min, "orderItemsPerOrder.min")
        hi = _require_int(items.max, "orderItemsPerOrder.max")
        if lo < 1:
            raise ConfigurationError(f"orderItemsPerOrder.min must be at least 1, got {lo}")
        if hi < lo:
            raise ConfigurationError(f"orderItemsPerOrder.max ({hi}) must be >= min ({lo})")

        default = dynamic_date_range(today)
        rng = self.date_range or default
        start = _parse_date(rng.start, "dateRange.start") if rng.start is not None else default.start
        end = _parse_date(rng.end, "dateRange.end") if rng.end is not None else default.end
        # orders are never dated after generation day
        end = min(end, default.end)
        if start > end:
            raise ConfigurationError(f"dateRange.start ({start}) is after dateRange.end ({end})")

        if counts["users"] > 0 and not eligible_cities(counts["countries"], counts["cities"]):
            raise ConfigurationError(
                f"{counts['users']} users requested but none of the first {counts['cities']} cities "
                f"belongs to the first {counts['countries']} countries"
            )
        if counts["orders"] > 0 and (counts["users"] == 0 or counts["products"] == 0):
            raise ConfigurationError("orders require at least one user and one product")

        return replace(
            self,
            order_items_per_order=ItemsPerOrder(lo, hi),
            date_range=DateRange(start, end),
            error_config=self.error_config.validate(),
            **counts,
        )

    @classmethod
    def from_dict(cls, data: Optional[Mapping[str, Any]]) -> "GenerationConfig":
        if data is None:
            return cls()
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"configuration must be an object, got {type(data).__name__}")
        aliases = {
            "orderItemsPerOrder": "order_items_per_order",
            "dateRange": "date_range",
            "errorConfig": "error_config",
        }
        known = {"countries", "cities", "users", "products", "orders", "order_items_per_order", "date_range", "error_config"}
        kwargs: Dict[str, Any] = {}
        for key, value in data.items():
            name = aliases.get(key, key)
            if name not in known:
                raise ConfigurationError(f"unknown configuration field: {key}")
            kwargs[name] = value

        if "order_items_per_order" in kwargs:
            items = kwargs["order_items_per_order"]
            if not isinstance(items, Mapping):
                raise ConfigurationError("orderItemsPerOrder must be an object with min and max")
            unknown = set(items) - {"min", "max"}
            if unknown:
                raise ConfigurationError(f"unknown orderItemsPerOrder field(s): {', '.join(sorted(unknown))}")
            default = ItemsPerOrder()
            kwargs["order_items_per_order"] = ItemsPerOrder(items.get("min", default.min), items.get("max", default.max))

        if "date_range" in kwargs:
            rng = kwargs["date_range"]
            if rng is None:
                kwargs["date_range"] = None
            elif not isinstance(rng, Mapping):
                raise ConfigurationError("dateRange must be an object with start and end")
            else:
                start = _parse_date(rng["start"], "dateRange.start") if rng.get("start") is not None else None
                end = _parse_date(rng["end"], "dateRange.end") if rng.get("end") is not None else None
                kwargs["date_range"] = DateRange(start, end)

        if "error_config" in kwargs:
            kwargs["error_config"] = error_config_from_dict(kwargs["error_config"])

        return cls(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "countries": self.countries,
            "cities": self.cities,
            "users": self.users,
            "products": self.products,
            "orders": self.orders,
            "orderItemsPerOrder": asdict(self.order_items_per_order),
        }
        if self.date_range is not None:
            out["dateRange"] = {
                "start": self.date_range.start.isoformat() if self.date_range.start else None,
                "end": self.date_range.end.isoformat() if self.date_range.end else None,
            }
        ec = self.error_config
        out["errorConfig"] = {"enabled": ec.enabled}
        for c in ERROR_CATEGORIES:
            out["errorConfig"][f"{c}Errors"] = getattr(ec, f"{c}_errors")
        return out


def error_config_from_dict(data: Any) -> ErrorConfig:
    if data is None:
        return ErrorConfig()
    if not isinstance(data, Mapping):
        raise ConfigurationError("errorConfig must be an object")
    kwargs: Dict[str, Any] = {}
    for key, value in data.items():
        if key == "enabled":
            kwargs["enabled"] = value
            continue
        name = key
        if key.endswith("Errors"):
            name = key[: -len("Errors")] + "_errors"
        if name not in {f"{c}_errors" for c in ERROR_CATEGORIES}:
            raise ConfigurationError(f"unknown errorConfig field: {key}")
        kwargs[name] = value
    return ErrorConfig(**kwargs)


SIZE_PRESETS: Dict[str, GenerationConfig] = {
    "small": GenerationConfig(countries=10, cities=20, users=50, products=50, orders=100, order_items_per_order=ItemsPerOrder(1, 3)),
    "medium": GenerationConfig(countries=20, cities=40, users=200, products=150, orders=500, order_items_per_order=ItemsPerOrder(1, 5)),
    "large": GenerationConfig(countries=30, cities=100, users=1000, products=500, orders=2000, order_items_per_order=ItemsPerOrder(1, 8)),
    "realistic": GenerationConfig(countries=25, cities=75, users=500, products=300, orders=1500, order_items_per_order=ItemsPerOrder(1, 6)),
}

CHALLENGE_PRESETS: Dict[str, GenerationConfig] = {
    "light": GenerationConfig(
        countries=15, cities=30, users=200, products=150, orders=400,
        order_items_per_order=ItemsPerOrder(1, 4),
        error_config=ErrorConfig(True, email_errors=5, delivery_errors=3, pricing_errors=2, location_errors=4, quantity_errors=2),
    ),
    "medium": GenerationConfig(
        countries=20, cities=50, users=300, products=200, orders=800,
        order_items_per_order=ItemsPerOrder(1, 5),
        error_config=ErrorConfig(True, email_errors=15, delivery_errors=10, pricing_errors=8, location_errors=12, quantity_errors=5),
    ),
    "heavy": GenerationConfig(
        countries=25, cities=60, users=400, products=250, orders=1000,
        order_items_per_order=ItemsPerOrder(1, 6),
        error_config=ErrorConfig(True, email_errors=25, delivery_errors=20, pricing_errors=15, location_errors=18, quantity_errors=10),
    ),
}


def size_preset(name: str) -> GenerationConfig:
    try:
        return SIZE_PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"unknown size preset {name!r}; choose from {', '.join(SIZE_PRESETS)}") from None


def challenge_preset(name: str) -> GenerationConfig:
    try:
        return CHALLENGE_PRESETS[name]
    except KeyError:
        raise ConfigurationError(f"unknown challenge level {name!r}; choose from {', '.join(CHALLENGE_PRESETS)}") from None


def scaled_config(multiplier: int) -> GenerationConfig:
    m = _require_int(multiplier, "multiplier")
    if m < 1:
        raise ConfigurationError(f"multiplier must be at least 1, got {m}")
    return GenerationConfig(
        countries=min(30, 25 * m),
        cities=min(100, 50 * m),
        users=100 * m,
        products=100 * m,
        orders=500 * m,
        order_items_per_order=ItemsPerOrder(1, min(8, 3 + m)),
    )


def challenge_config(rate: int) -> GenerationConfig:
    r = _require_int(rate, "error rate")
    if not 0 <= r <= MAX_CHALLENGE_RATE:
        raise ConfigurationError(f"error rate must be between 0 and {MAX_CHALLENGE_RATE}, got {r}")
    return GenerationConfig(
        countries=20, cities=50, users=300, products=200, orders=800,
        order_items_per_order=ItemsPerOrder(1, 5),
        error_config=ErrorConfig(
            enabled=True,
            email_errors=r,
            delivery_errors=max(1, round(r * 0.7)),
            pricing_errors=max(1, round(r * 0.5)),
            location_errors=max(1, round(r * 0.8)),
            quantity_errors=max(1, round(r * 0.3)),
        ),
    )


@dataclass(frozen=True)
class ConnectionSettings:
    supabase_url: Optional[str] = None
    service_role_key: Optional[str] = None
    pg_dsn: Optional[str] = None
    sqlite_path: str = ":memory:"

    @classmethod
    def from_env(cls) -> "ConnectionSettings":
        return cls(
            supabase_url=os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL"),
            service_role_key=os.getenv("SUPABASE_SERVICE_ROLE_KEY"),
            pg_dsn=os.getenv("PG_DSN"),
            sqlite_path=os.getenv("SQLITE_PATH", ":memory:"),
        )
