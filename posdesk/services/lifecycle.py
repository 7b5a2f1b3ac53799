"""Status machines for quotes, invoices, orders and tables."""

from __future__ import annotations

from typing import Dict, FrozenSet, Mapping

from posdesk.services.exceptions import DocumentLocked, InvalidTransition

QUOTE_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    "draft": frozenset({"sent", "converted", "expired"}),
    "sent": frozenset({"accepted", "rejected", "converted", "expired"}),
    "accepted": frozenset({"converted"}),
    "rejected": frozenset(),
    "expired": frozenset(),
    "converted": frozenset(),
}

INVOICE_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    "draft": frozenset({"sent", "cancelled"}),
    "sent": frozenset({"partially_paid", "paid", "overdue", "cancelled"}),
    "partially_paid": frozenset({"paid", "overdue", "cancelled"}),
    "overdue": frozenset({"partially_paid", "paid", "cancelled"}),
    "paid": frozenset(),
    "cancelled": frozenset(),
}

ORDER_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    "open": frozenset({"completed", "cancelled", "saved"}),
    "saved": frozenset({"open", "cancelled"}),
    "completed": frozenset(),
    "cancelled": frozenset(),
}

TABLE_TRANSITIONS: Mapping[str, FrozenSet[str]] = {
    "available": frozenset({"occupied", "reserved", "maintenance"}),
    "occupied": frozenset({"available", "reserved", "maintenance"}),
    "reserved": frozenset({"available", "occupied", "maintenance"}),
    "maintenance": frozenset({"available"}),
}

RECEIPT_TRANSITIONS: Mapping[str, FrozenSet[str]] = {"issued": frozenset()}

LIFECYCLES: Dict[str, Mapping[str, FrozenSet[str]]] = {
    "quote": QUOTE_TRANSITIONS,
    "invoice": INVOICE_TRANSITIONS,
    "order": ORDER_TRANSITIONS,
    "table": TABLE_TRANSITIONS,
    "receipt": RECEIPT_TRANSITIONS,
}

# States in which line items may still be edited.
EDITABLE_STATES: Dict[str, FrozenSet[str]] = {
    "quote": frozenset({"draft", "sent"}),
    "invoice": frozenset({"draft"}),
    "order": frozenset({"open", "saved"}),
    "receipt": frozenset(),
}


def can_transition(kind: str, current: str, target: str) -> bool:
    transitions = LIFECYCLES[kind]
    return target in transitions.get(current, frozenset())


def ensure_transition(kind: str, current: str, target: str) -> None:
    if not can_transition(kind, current, target):
        raise InvalidTransition(kind, current, target)


def is_terminal(kind: str, status: str) -> bool:
    return not LIFECYCLES[kind].get(status)


def ensure_editable(kind: str, status: str) -> None:
    if status not in EDITABLE_STATES.get(kind, frozenset()):
        raise DocumentLocked(f"Items of a {status} {kind} can no longer be changed")
