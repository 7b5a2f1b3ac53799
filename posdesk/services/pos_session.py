"""Persist the in-progress POS order in a string key-value store.

Each field is stored under its own organization prefixed key, e.g.
``ORG-1_posCart``, as a JSON string. A value that no longer parses is
dropped instead of breaking the screen.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, MutableMapping

from pydantic import ValidationError

from posdesk.schemas.pos import CartItem, PosSessionState
from posdesk.services.exceptions import MissingOrganization
from posdesk.services.totals import compute_line_total

logger = logging.getLogger(__name__)

POS_STORAGE_KEYS: Dict[str, str] = {
    "cart": "posCart",
    "selected_table": "posSelectedTable",
    "selected_customer": "posSelectedCustomer",
    "selected_order_type": "posSelectedOrderType",
    "current_view": "posCurrentView",
    "category_path": "posCategoryPath",
    "selected_order": "posSelectedOrder",
}

# Cleared with the cart; the order type and view survive.
_CART_FIELDS = ("cart", "selected_table", "selected_customer", "category_path", "selected_order")


class PosSessionStore:
    def __init__(self, storage: MutableMapping[str, str], organization_id: str) -> None:
        if not organization_id:
            raise MissingOrganization()
        self._storage = storage
        self._organization_id = organization_id

    def key(self, field: str) -> str:
        return f"{self._organization_id}_{POS_STORAGE_KEYS[field]}"

    def _read(self, field: str) -> Any:
        key = self.key(field)
        raw = self._storage.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Dropping unreadable POS value under %s", key)
            self._storage.pop(key, None)
            return None

    def _write(self, field: str, value: Any) -> None:
        key = self.key(field)
        if value is None:
            self._storage.pop(key, None)
        else:
            self._storage[key] = json.dumps(value)

    def save(self, state: PosSessionState) -> None:
        data = state.model_dump(mode="json")
        for field in POS_STORAGE_KEYS:
            self._write(field, data[field])

    def load(self) -> PosSessionState:
        values: Dict[str, Any] = {}
        for field in POS_STORAGE_KEYS:
            value = self._read(field)
            if value is None:
                continue
            try:
                PosSessionState.model_validate({field: value})
            except ValidationError:
                logger.warning("Dropping invalid POS value under %s", self.key(field))
                self._storage.pop(self.key(field), None)
                continue
            values[field] = value
        return PosSessionState.model_validate(values)

    def save_cart(self, cart: List[CartItem]) -> None:
        self._write("cart", [item.model_dump(mode="json") for item in cart])

    def load_cart(self) -> List[CartItem]:
        return self.load().cart

    def add_to_cart(self, item: CartItem) -> List[CartItem]:
        """Add ``item`` or bump the quantity of the matching cart line."""

        cart = self.load_cart()
        for index, existing in enumerate(cart):
            if existing.id == item.id:
                quantity = existing.quantity + item.quantity
                cart[index] = existing.model_copy(
                    update={
                        "quantity": quantity,
                        "total": compute_line_total(quantity, existing.price),
                    }
                )
                break
        else:
            cart.append(
                item.model_copy(update={"total": compute_line_total(item.quantity, item.price)})
            )
        self.save_cart(cart)
        return cart

    def clear_cart(self) -> None:
        for field in _CART_FIELDS:
            self._write(field, None)

    def clear(self) -> None:
        for field in POS_STORAGE_KEYS:
            self._write(field, None)
