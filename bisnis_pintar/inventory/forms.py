"""
Input boundary for the add/edit item form.

Raw form values are coerced here so the store only ever sees well-typed items:
unparsable numbers become zero, a blank category becomes the default
placeholder, and new ids are millisecond timestamps.
"""
from __future__ import annotations

import time
from typing import Callable, Container, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from bisnis_pintar.inventory.models import BusinessItem
from bisnis_pintar.utils.money import to_decimal, to_int

DEFAULT_CATEGORY = "Umum"

RawNumber = Union[int, float, str, None]


class ItemForm(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    name: str
    stock: RawNumber = None
    capital_price: RawNumber = Field(default=None, alias="capitalPrice")
    selling_price: RawNumber = Field(default=None, alias="sellingPrice")
    category: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must not be empty")
        return value


def new_item_id(taken: Container[str] = (), clock: Callable[[], float] = time.time) -> str:
    """Millisecond timestamp id, bumped until it is not in `taken`."""
    candidate = int(clock() * 1000)
    while str(candidate) in taken:
        candidate += 1
    return str(candidate)


def build_item(
    form: ItemForm,
    *,
    item_id: Optional[str] = None,
    taken: Container[str] = (),
    default_category: str = DEFAULT_CATEGORY,
) -> BusinessItem:
    """Turn a submitted form into an item; keeps `item_id` when editing."""
    category = (form.category or "").strip() or default_category
    return BusinessItem(
        id=item_id or new_item_id(taken),
        name=form.name,
        stock=to_int(form.stock),
        capital_price=to_decimal(form.capital_price),
        selling_price=to_decimal(form.selling_price),
        category=category,
    )


__all__ = ["DEFAULT_CATEGORY", "ItemForm", "build_item", "new_item_id"]
