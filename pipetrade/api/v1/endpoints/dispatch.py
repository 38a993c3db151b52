"""API endpoints for packing lists and dispatch notes."""
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import User
from pipetrade.schemas.dispatch import (
    PackingListCreate, PackingListResponse, PackingListListResponse,
    DispatchNoteCreate, DispatchNoteResponse, DispatchNoteCreateResponse, DispatchNoteListResponse,
)
from pipetrade.services.dispatch_service import DispatchService

router = APIRouter()


# ==================== Packing Lists ====================

@router.get("/packing-lists", response_model=PackingListListResponse)
async def list_packing_lists(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    sales_order_id: Optional[UUID] = None,
    current_user: User = Depends(require_access("packingList", "read")),
):
    packing_lists, total = await DispatchService(db).list_packing_lists(sales_order_id, skip, limit)
    return PackingListListResponse(
        items=[PackingListResponse.model_validate(pl) for pl in packing_lists],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/packing-lists", response_model=PackingListResponse, status_code=status.HTTP_201_CREATED)
async def create_packing_list(
    data: PackingListCreate,
    db: DB,
    current_user: User = Depends(require_access("packingList", "write")),
):
    """Pack RESERVED or ACCEPTED heats for a sales order."""
    return await DispatchService(db).create_packing_list(data, current_user)


@router.get("/packing-lists/{packing_list_id}", response_model=PackingListResponse)
async def get_packing_list(
    packing_list_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("packingList", "read")),
):
    return await DispatchService(db).get_packing_list(packing_list_id)


# ==================== Dispatch Notes ====================

@router.get("/dispatch-notes", response_model=DispatchNoteListResponse)
async def list_dispatch_notes(
    db: DB,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    sales_order_id: Optional[UUID] = None,
    search: Optional[str] = None,
    current_user: User = Depends(require_access("dispatchNote", "read")),
):
    notes, total = await DispatchService(db).list_dispatch_notes(sales_order_id, search, skip, limit)
    return DispatchNoteListResponse(
        items=[DispatchNoteResponse.model_validate(dn) for dn in notes],
        total=total,
        page=(skip // limit) + 1,
        size=limit,
        pages=(total + limit - 1) // limit,
    )


@router.post("/dispatch-notes", response_model=DispatchNoteCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_dispatch_note(
    data: DispatchNoteCreate,
    db: DB,
    current_user: User = Depends(require_access("dispatchNote", "write")),
):
    """
    Dispatch a packing list.

    Packed heats and their reservations become DISPATCHED and the sales
    order rolls up to PARTIALLY_ or FULLY_DISPATCHED.
    """
    dispatch_note, sales_order = await DispatchService(db).create_dispatch_note(data, current_user)
    response = DispatchNoteCreateResponse.model_validate(dispatch_note)
    response.so_status = sales_order.status
    return response


@router.get("/dispatch-notes/{dispatch_note_id}", response_model=DispatchNoteResponse)
async def get_dispatch_note(
    dispatch_note_id: UUID,
    db: DB,
    current_user: User = Depends(require_access("dispatchNote", "read")),
):
    return await DispatchService(db).get_dispatch_note(dispatch_note_id)
