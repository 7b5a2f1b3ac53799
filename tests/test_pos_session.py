from decimal import Decimal

import pytest

from posdesk.schemas.pos import CartItem, PosSessionState
from posdesk.services.exceptions import MissingOrganization
from posdesk.services.pos_session import PosSessionStore


def test_state_round_trips_under_organization_keys() -> None:
    storage = {}
    session = PosSessionStore(storage, "org-1")
    state = PosSessionState(
        cart=[CartItem(id="p1", name="Tea", price=Decimal("5"), quantity=2, total=Decimal("10"))],
        selected_table={"id": "TBL-00001", "name": "A"},
        current_view="tables",
        category_path=["drinks", "hot"],
    )

    session.save(state)

    assert "org-1_posCart" in storage
    assert "org-1_posSelectedCustomer" not in storage
    assert session.load() == state


def test_organizations_do_not_share_sessions() -> None:
    storage = {}
    PosSessionStore(storage, "org-1").save(PosSessionState(current_view="payment"))

    assert PosSessionStore(storage, "org-2").load().current_view == "items"


def test_corrupt_values_are_dropped() -> None:
    storage = {"org-1_posCart": "{not json", "org-1_posCurrentView": '"nowhere"', "org-1_posCategoryPath": '["a"]'}
    session = PosSessionStore(storage, "org-1")

    state = session.load()

    assert state.cart == []
    assert state.current_view == "items"
    assert state.category_path == ["a"]
    assert "org-1_posCart" not in storage
    assert "org-1_posCurrentView" not in storage


def test_add_to_cart_merges_lines() -> None:
    session = PosSessionStore({}, "org-1")
    latte = CartItem(id="p1", name="Latte", price=Decimal("14.50"))

    session.add_to_cart(latte)
    cart = session.add_to_cart(latte.model_copy(update={"quantity": 2}))

    assert len(cart) == 1
    assert cart[0].quantity == 3
    assert cart[0].total == Decimal("43.50")
    assert session.load_cart() == cart


def test_clear_cart_keeps_order_type_and_view() -> None:
    storage = {}
    session = PosSessionStore(storage, "org-1")
    session.save(
        PosSessionState(
            cart=[CartItem(id="p1", name="Tea", price=Decimal("5"))],
            selected_order_type={"id": "OTY-00001", "name": "Takeaway"},
            current_view="payment",
        )
    )

    session.clear_cart()

    state = session.load()
    assert state.cart == []
    assert state.selected_order_type == {"id": "OTY-00001", "name": "Takeaway"}
    assert state.current_view == "payment"

    session.clear()
    assert storage == {}


def test_organization_is_required() -> None:
    with pytest.raises(MissingOrganization):
        PosSessionStore({}, "")
