"""History endpoints.

Routes
------
GET    /history    → recent scrapes, newest first
DELETE /history    → forget all entries
"""

from __future__ import annotations

from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Response
from pydantic import BaseModel

from unraveler.history import clear_history, load_history

router = APIRouter()


class HistoryItem(BaseModel):
    url: str
    title: str
    timestamp: int


@router.get("", response_model=list[HistoryItem])
def list_history() -> list[dict[str, Any]]:
    return [asdict(e) for e in load_history()]


@router.delete("", status_code=204)
def delete_history() -> Response:
    clear_history()
    return Response(status_code=204)
