"""Heat-number traceability and search endpoints."""
from fastapi import APIRouter, Depends, Query

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import User
from pipetrade.schemas.traceability import HeatTraceResponse, HeatSearchResponse
from pipetrade.services.traceability_service import TraceabilityService

router = APIRouter()


@router.get("/heat/{heat_no}", response_model=HeatTraceResponse)
async def trace_heat(
    heat_no: str,
    db: DB,
    current_user: User = Depends(require_access("reports", "read")),
):
    """Full chain for one heat: vendor, PO, GRN, QC, reservations, dispatch, invoices, payments."""
    return await TraceabilityService(db).trace_heat(heat_no)


@router.get("/search", response_model=HeatSearchResponse)
async def search_heats(
    db: DB,
    heat_no: str = Query(..., min_length=2, description="Part of a heat number, case-insensitive"),
    limit: int = Query(50, ge=1, le=200),
    current_user: User = Depends(require_access("reports", "read")),
):
    """Heats matching a partial number, each with its procurement, QC, reservation and dispatch references."""
    return await TraceabilityService(db).search_heats(heat_no.strip(), limit)
