from typing import List

from fastapi import APIRouter, Depends, Response

from posdesk.dependencies.services import get_pos_session
from posdesk.schemas.pos import CartItem, PosSessionState
from posdesk.services import PosSessionStore
from posdesk.services.exceptions import ServiceError
from posdesk.tools.errors import http_error

router = APIRouter(prefix="/organizations/{organization_id}/pos/session")


@router.get("", response_model=PosSessionState)
async def load_session(session: PosSessionStore = Depends(get_pos_session)):
    return session.load()


@router.put("", response_model=PosSessionState)
async def save_session(req: PosSessionState, session: PosSessionStore = Depends(get_pos_session)):
    session.save(req)
    return session.load()


@router.delete("", status_code=204)
async def clear_session(session: PosSessionStore = Depends(get_pos_session)):
    session.clear()
    return Response(status_code=204)


@router.post("/cart", response_model=List[CartItem])
async def add_cart_item(req: CartItem, session: PosSessionStore = Depends(get_pos_session)):
    """Add a product or service to the cart, merging with an existing line."""

    try:
        return session.add_to_cart(req)
    except ServiceError as exc:
        raise http_error(exc) from exc


@router.delete("/cart", response_model=PosSessionState)
async def clear_cart(session: PosSessionStore = Depends(get_pos_session)):
    session.clear_cart()
    return session.load()
