"""Document sequence endpoints: current counters and next-number preview."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from pipetrade.api.deps import DB, require_access
from pipetrade.models.user import User
from pipetrade.schemas.document_sequence import DocumentSequenceResponse, DocumentNumberPreview
from pipetrade.services.document_sequence_service import DocumentSequenceService, DOCUMENT_METADATA

router = APIRouter()


@router.get("", response_model=List[DocumentSequenceResponse])
async def list_sequences(
    db: DB,
    current_user: User = Depends(require_access("reports", "read")),
):
    sequences = await DocumentSequenceService(db).list_sequences()
    response = []
    for sequence in sequences:
        item = DocumentSequenceResponse.model_validate(sequence)
        item.description = DOCUMENT_METADATA.get(sequence.document_type)
        response.append(item)
    return response


@router.get("/{document_type}/preview", response_model=DocumentNumberPreview)
async def preview_next_number(
    document_type: str,
    db: DB,
    current_user: User = Depends(require_access("reports", "read")),
):
    """Next number for a document type, without consuming it."""
    try:
        next_number = await DocumentSequenceService(db).preview_next_number(document_type)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return DocumentNumberPreview(document_type=document_type.upper(), next_number=next_number)
