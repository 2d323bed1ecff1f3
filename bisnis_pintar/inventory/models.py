"""
Value objects for stocked items and the figures derived from them.

Attribute names are snake_case; the persisted and HTTP representations keep the
camelCase field names (`capitalPrice`, `sellingPrice`, ...) verbatim.
"""
from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Mapping

from bisnis_pintar.utils.money import to_exact_number, to_json_number

ITEM_FIELDS = ("id", "name", "stock", "capitalPrice", "sellingPrice", "category")


def _exact(value: Any, field_name: str) -> Decimal:
    # bool is an int subclass; a stored true/false is never a price
    if isinstance(value, bool) or not isinstance(value, (int, float, str, Decimal)):
        raise ValueError(f"{field_name} is not numeric: {value!r}")
    try:
        result = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name} is not numeric: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"{field_name} is not finite: {value!r}")
    return result


@dataclass(frozen=True)
class BusinessItem:
    id: str
    name: str
    stock: int
    capital_price: Decimal
    selling_price: Decimal
    category: str = ""

    @property
    def margin(self) -> Decimal:
        """Per-unit selling price minus cost; negative when sold at a loss."""
        return self.selling_price - self.capital_price

    @property
    def capital_value(self) -> Decimal:
        return self.stock * self.capital_price

    @property
    def revenue_value(self) -> Decimal:
        return self.stock * self.selling_price

    @property
    def profit_value(self) -> Decimal:
        return self.stock * self.margin

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "stock": self.stock,
            "capitalPrice": to_json_number(self.capital_price),
            "sellingPrice": to_json_number(self.selling_price),
            "category": self.category,
        }

    def to_record(self) -> Dict[str, Any]:
        """Persisted form: like to_dict, but fractional prices stay Decimal."""
        record = self.to_dict()
        record["capitalPrice"] = to_exact_number(self.capital_price)
        record["sellingPrice"] = to_exact_number(self.selling_price)
        return record

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "BusinessItem":
        """
        Rebuild an item from its stored representation.

        Raises KeyError for a missing field and ValueError for a value of the
        wrong kind; callers that read untrusted snapshots treat both as
        malformed data.
        """
        missing = [name for name in ITEM_FIELDS if name not in payload]
        if missing:
            raise KeyError(f"missing fields: {', '.join(missing)}")
        stock = payload["stock"]
        if isinstance(stock, bool) or not isinstance(stock, (int, float, Decimal)):
            raise ValueError(f"stock is not numeric: {stock!r}")
        if not isinstance(stock, int):
            whole = _exact(stock, "stock")
            if whole != whole.to_integral_value():
                raise ValueError(f"stock is not a whole number: {stock!r}")
            stock = int(whole)
        return cls(
            id=str(payload["id"]),
            name=str(payload["name"]),
            stock=int(stock),
            capital_price=_exact(payload["capitalPrice"], "capitalPrice"),
            selling_price=_exact(payload["sellingPrice"], "sellingPrice"),
            category=str(payload["category"] or ""),
        )


@dataclass(frozen=True)
class BusinessMetrics:
    total_capital: Decimal
    total_potential_revenue: Decimal
    total_potential_profit: Decimal
    total_items: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "totalCapital": to_json_number(self.total_capital),
            "totalPotentialRevenue": to_json_number(self.total_potential_revenue),
            "totalPotentialProfit": to_json_number(self.total_potential_profit),
            "totalItems": self.total_items,
        }


@dataclass(frozen=True)
class ChartDatum:
    name: str
    profit_contribution: Decimal
    revenue_contribution: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "profitContribution": to_json_number(self.profit_contribution),
            "revenueContribution": to_json_number(self.revenue_contribution),
        }


__all__ = ["BusinessItem", "BusinessMetrics", "ChartDatum", "ITEM_FIELDS"]
