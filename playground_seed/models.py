from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple


@dataclass
class Country:
    id: int
    name: str
    code: str
    continent: str

    def as_row(self) -> Tuple:
        return (self.name, self.code, self.continent)


@dataclass
class City:
    id: int
    name: str
    country_id: int
    population: int

    def as_row(self) -> Tuple:
        return (self.name, self.country_id, self.population)


@dataclass
class User:
    id: int
    first_name: str
    last_name: str
    email: str
    country_id: int
    city_id: int

    def as_row(self) -> Tuple:
        return (self.first_name, self.last_name, self.email, self.country_id, self.city_id)


@dataclass
class Product:
    id: int
    name: str
    description: str
    price: Decimal
    category: str
    stock: int

    def as_row(self) -> Tuple:
        return (self.name, self.description, self.price, self.category, self.stock)


@dataclass
class Order:
    id: int
    user_id: int
    total_amount: Decimal
    status: str
    order_date: dt.date
    estimated_delivery: Optional[dt.date]
    delivery_date: Optional[dt.date]

    def as_row(self) -> Tuple:
        return (
            self.user_id,
            self.total_amount,
            self.status,
            self.order_date,
            self.estimated_delivery,
            self.delivery_date,
        )


@dataclass
class OrderItem:
    id: int
    order_id: int
    product_id: int
    quantity: int
    price: Decimal

    @property
    def line_total(self) -> Decimal:
        return self.price * self.quantity

    def as_row(self) -> Tuple:
        return (self.order_id, self.product_id, self.quantity, self.price)


@dataclass
class Dataset:
    countries: List[Country] = field(default_factory=list)
    cities: List[City] = field(default_factory=list)
    users: List[User] = field(default_factory=list)
    products: List[Product] = field(default_factory=list)
    orders: List[Order] = field(default_factory=list)
    order_items: List[OrderItem] = field(default_factory=list)

    def rows_for(self, table: str) -> Iterable[Tuple]:
        for entity in getattr(self, table):
            yield entity.as_row()

    def counts(self) -> Dict[str, int]:
        return {
            "countries": len(self.countries),
            "cities": len(self.cities),
            "users": len(self.users),
            "products": len(self.products),
            "orders": len(self.orders),
            "order_items": len(self.order_items),
        }

    def items_by_order(self) -> Dict[int, List[OrderItem]]:
        out: Dict[int, List[OrderItem]] = {}
        for item in self.order_items:
            out.setdefault(item.order_id, []).append(item)
        return out
