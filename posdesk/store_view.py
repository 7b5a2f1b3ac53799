"""Routes for browsing an organization's documents held by the in-memory store."""
from __future__ import annotations

import html
import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Sequence

from fastapi import APIRouter, HTTPException
from fastapi.responses import HTMLResponse

from posdesk.services.exceptions import ServiceError
from posdesk.services.store import COLLECTIONS, collection_path, document_path, get_document_store
from posdesk.tools.errors import http_error

router = APIRouter()

# Template bodies and tenant ids would drown the overview.
_HIDDEN_COLUMNS = {"organization_id", "content"}
_LEADING_COLUMNS = ("id", "status", "name", "client_name", "customer_name", "total")

_PAGE_STYLE = """
    body { font-family: Arial, sans-serif; margin: 2rem; }
    section { margin-bottom: 2rem; }
    table { border-collapse: collapse; width: 100%; }
    th, td { border: 1px solid #ccc; padding: 0.4rem; text-align: left; vertical-align: top; }
    th { background-color: #f0f0f0; }
    h2 small { color: #777; font-weight: normal; }
"""


def _cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat(timespec="seconds")
    if isinstance(value, (str, int, float, bool, Decimal)):
        return str(value)
    if isinstance(value, list) and value and all(isinstance(item, Mapping) for item in value):
        names = [str(item.get("name") or item.get("method") or item.get("id", "")) for item in value]
        return f"{len(value)}: " + ", ".join(names)
    return json.dumps(value, default=str)


def _columns(rows: Sequence[Mapping[str, Any]]) -> List[str]:
    seen = {key for row in rows for key in row if key not in _HIDDEN_COLUMNS}
    leading = [column for column in _LEADING_COLUMNS if column in seen]
    rest = sorted(seen.difference(leading))
    return leading + rest


def _collection_section(collection: str, rows: Sequence[Mapping[str, Any]]) -> str:
    heading = f"<h2>{html.escape(collection)} <small>({len(rows)})</small></h2>"
    if not rows:
        return f"<section>{heading}<p>No records found.</p></section>"

    columns = _columns(rows)
    head = "".join(f"<th>{html.escape(column)}</th>" for column in columns)
    body = "".join(
        "<tr>" + "".join(f"<td>{html.escape(_cell(row.get(column)))}</td>" for column in columns) + "</tr>"
        for row in rows
    )
    return f"<section>{heading}<table><thead><tr>{head}</tr></thead><tbody>{body}</tbody></table></section>"


@router.get("/store/{organization_id}", response_class=HTMLResponse)
async def view_store(organization_id: str) -> HTMLResponse:
    """Render every collection of an organization as HTML tables."""
    store = get_document_store()

    sections: List[str] = []
    for collection in COLLECTIONS:
        rows = await store.list(collection_path(organization_id, collection))
        rows.sort(key=lambda row: str(row.get("id", "")))
        sections.append(_collection_section(collection, rows))

    title = html.escape(f"Store overview: {organization_id}")
    page = (
        f"<html><head><title>{title}</title><style>{_PAGE_STYLE}</style></head>"
        f"<body><h1>{title}</h1>{''.join(sections)}</body></html>"
    )
    return HTMLResponse(content=page)


@router.delete("/store/{organization_id}/{collection}/{record_id}")
async def delete_store_record(organization_id: str, collection: str, record_id: str) -> Dict[str, str]:
    """Remove a single document from an organization's collection."""

    normalized = collection.strip()
    if normalized not in COLLECTIONS:
        raise HTTPException(status_code=404, detail="Unsupported collection")

    try:
        deleted = await get_document_store().delete(
            document_path(organization_id, normalized, record_id)
        )
    except ServiceError as exc:
        raise http_error(exc) from exc
    if not deleted:
        raise HTTPException(status_code=404, detail="Record not found")

    return {"status": "deleted", "collection": normalized, "record_id": record_id}
