from __future__ import annotations

import datetime as dt
import logging
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from .catalogs import (
    COUNTRY_DATA,
    FIRST_NAMES,
    LAST_NAMES,
    PRODUCT_CATEGORIES,
    eligible_cities,
)
from .config import GenerationConfig, today_utc
from .injection import ErrorInjectionPolicy
from .models import City, Country, Dataset, Order, OrderItem, Product, User
from .primitives import (
    RandomSource,
    UniqueValues,
    fallback_email,
    fallback_product_name,
    make_description,
    make_email,
    make_price,
    make_product_name,
    money,
)

RECENT_ORDER_DAYS = 2
DELIVERED_SHARE = 0.8
PENDING_SHARE = 0.1


def estimate_delivery(src: RandomSource, order_date: dt.date) -> dt.date:
    return order_date + dt.timedelta(days=src.randint(3, 14))


def resolve_order_status(
    src: RandomSource, order_date: dt.date, today: dt.date
) -> Tuple[str, Optional[dt.date], Optional[dt.date]]:
    """Derive (status, estimated_delivery, delivery_date) from how old the order is."""
    if order_date > today:
        return "pending", estimate_delivery(src, order_date), None
    if (today - order_date).days < RECENT_ORDER_DAYS:
        return "pending", estimate_delivery(src, order_date), None

    roll = src.random()
    if roll < DELIVERED_SHARE:
        estimated = estimate_delivery(src, order_date)
        delivered = estimated + dt.timedelta(days=src.randint(-2, 5))
        # never delivered in the future
        return "delivered", estimated, delivered if delivered <= today else None
    if roll < DELIVERED_SHARE + PENDING_SHARE:
        return "pending", estimate_delivery(src, order_date), None
    return "cancelled", None, None


class SyntheticGenerator:
    def __init__(
        self,
        config: GenerationConfig,
        seed: Optional[int] = None,
        today: Optional[dt.date] = None,
    ):
        self.today = today or today_utc()
        self.config = config.validate(self.today)
        self.src = RandomSource(seed)
        self.policy = ErrorInjectionPolicy(self.config.error_config, self.src)
        self.country_id_by_code: Dict[str, int] = {}

    def build_countries(self) -> List[Country]:
        rows = []
        for i, (name, code, continent) in enumerate(COUNTRY_DATA[: self.config.countries], start=1):
            rows.append(Country(i, name, code, continent))
            self.country_id_by_code[code] = i
        return rows

    def build_cities(self) -> List[City]:
        rows = []
        for name, code, population in eligible_cities(self.config.countries, self.config.cities):
            rows.append(City(len(rows) + 1, name, self.country_id_by_code[code], population))
        return rows

    def build_users(self, cities: List[City], countries: List[Country]) -> List[User]:
        emails = UniqueValues("email")
        country_ids = [c.id for c in countries]
        rows = []
        for i in range(1, self.config.users + 1):
            first = self.src.choice(FIRST_NAMES)
            last = self.src.choice(LAST_NAMES)
            email = emails.draw(
                lambda: make_email(self.src, first, last),
                lambda: fallback_email(first, last, i),
            )
            email = self.policy.email(email, emails)
            city = self.src.choice(cities)
            country_id = self.policy.location(city.country_id, country_ids)
            rows.append(User(i, first, last, email, country_id, city.id))
        return rows

    def build_products(self) -> List[Product]:
        names = UniqueValues("product name")
        rows = []
        for i in range(1, self.config.products + 1):
            name = names.draw(
                lambda: make_product_name(self.src),
                lambda: fallback_product_name(self.src, i),
            )
            price = self.policy.price(make_price(self.src))
            rows.append(
                Product(
                    id=i,
                    name=name,
                    description=make_description(self.src, name),
                    price=price,
                    category=self.src.choice(PRODUCT_CATEGORIES),
                    stock=self.src.randint(0, 500),
                )
            )
        return rows

    def build_orders(self, users: List[User], products: List[Product]) -> Tuple[List[Order], List[OrderItem]]:
        span = self.config.date_range
        items_cfg = self.config.order_items_per_order
        orders: List[Order] = []
        items: List[OrderItem] = []
        for i in range(1, self.config.orders + 1):
            user = self.src.choice(users)
            order_date = self.src.date_between(span.start, span.end)
            status, estimated, delivered = resolve_order_status(self.src, order_date, self.today)
            estimated, delivered = self.policy.delivery(status, order_date, estimated, delivered)

            total = Decimal("0")
            count = self.src.randint(items_cfg.min, items_cfg.max)
            for idx in self.src.sample_indices(len(products), count):
                product = products[idx]
                quantity = self.policy.quantity(self.src.randint(1, 5))
                price = self.policy.price(product.price)
                item = OrderItem(len(items) + 1, i, product.id, quantity, price)
                total += item.line_total
                items.append(item)

            orders.append(Order(i, user.id, money(total), status, order_date, estimated, delivered))
        return orders, items

    def generate(self) -> Dataset:
        cfg = self.config
        logging.info(
            "Generating dataset countries=%d cities=%d users=%d products=%d orders=%d items/order=%d-%d range=%s..%s",
            cfg.countries,
            cfg.cities,
            cfg.users,
            cfg.products,
            cfg.orders,
            cfg.order_items_per_order.min,
            cfg.order_items_per_order.max,
            cfg.date_range.start,
            cfg.date_range.end,
        )
        data = Dataset()
        data.countries = self.build_countries()
        data.cities = self.build_cities()
        if len(data.cities) < cfg.cities:
            logging.info(
                "Only %d of %d requested cities belong to the selected countries", len(data.cities), cfg.cities
            )
        data.users = self.build_users(data.cities, data.countries)
        data.products = self.build_products()
        data.orders, data.order_items = self.build_orders(data.users, data.products)

        self.policy.log_summary(
            {
                "email": len(data.users),
                "location": len(data.users),
                "pricing": len(data.products) + len(data.order_items),
                "quantity": len(data.order_items),
                "delivery": len(data.orders),
            }
        )
        return data
