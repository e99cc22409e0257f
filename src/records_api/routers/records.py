from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response, status

from ..repositories import Repository
from ..schemas import ErrorMessage, RecordCreate, RecordOut, RecordUpdateEnvelope
from ..utils import INVALID_ID_MESSAGE, NOT_FOUND_MESSAGE, parse_record_id, update_envelope

router = APIRouter(
    prefix="/api/records",
    tags=["records"],
)

_ERROR_RESPONSES = {
    400: {"model": ErrorMessage, "description": "Invalid id or validation error"},
    500: {"model": ErrorMessage, "description": "Storage unavailable"},
}


# PUBLIC_INTERFACE
def get_repository(request: Request) -> Repository:
    """
    Dependency returning the repository the app was built with.
    """
    return request.app.state.repository


def _require_id(raw: str) -> int:
    record_id = parse_record_id(raw)
    if record_id is None:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=INVALID_ID_MESSAGE)
    return record_id


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=NOT_FOUND_MESSAGE)


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=List[RecordOut],
    summary="List Records",
    description="Return every record ordered by ascending id.",
    responses={500: _ERROR_RESPONSES[500]},
)
def list_records(repo: Repository = Depends(get_repository)) -> List[RecordOut]:
    return [RecordOut(**r) for r in repo.get_records()]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/search",
    response_model=List[RecordOut],
    summary="Search Records",
    description=(
        "Case-insensitive substring search on record titles. "
        "A missing or blank query returns every record."
    ),
    responses={500: _ERROR_RESPONSES[500]},
)
def search_records(
    q: Optional[str] = Query(None, description="Search text for the title"),
    repo: Repository = Depends(get_repository),
) -> List[RecordOut]:
    return [RecordOut(**r) for r in repo.search_records(q or "")]  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/{record_id}",
    response_model=RecordOut,
    summary="Get Record",
    description="Get a single record by ID.",
    responses={
        400: _ERROR_RESPONSES[400],
        404: {"model": ErrorMessage, "description": "Record not found"},
    },
)
def get_record(record_id: str, repo: Repository = Depends(get_repository)) -> RecordOut:
    item = repo.get_record(_require_id(record_id))
    if item is None:
        raise _not_found()
    return RecordOut(**item)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RecordOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Record",
    description="Create a new record and return it with its assigned id and createdAt.",
    responses={400: _ERROR_RESPONSES[400], 500: _ERROR_RESPONSES[500]},
)
def create_record(payload: RecordCreate, repo: Repository = Depends(get_repository)) -> RecordOut:
    created = repo.create_record(payload)
    return RecordOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.patch(
    "/{record_id}",
    response_model=RecordUpdateEnvelope,
    summary="Update Record",
    description=(
        "Replace title, description, status and priority of an existing record. "
        "Omitted status/priority fall back to their defaults."
    ),
    responses={
        400: _ERROR_RESPONSES[400],
        404: {"model": ErrorMessage, "description": "Record not found"},
        500: _ERROR_RESPONSES[500],
    },
)
def update_record(
    record_id: str, payload: RecordCreate, repo: Repository = Depends(get_repository)
) -> RecordUpdateEnvelope:
    updated = repo.update_record(_require_id(record_id), payload)
    if updated is None:
        raise _not_found()
    return RecordUpdateEnvelope(**update_envelope(RecordOut(**updated)))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{record_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    response_class=Response,
    summary="Delete Record",
    description="Delete a record by ID.",
    responses={
        204: {"description": "Record deleted"},
        400: _ERROR_RESPONSES[400],
        404: {"model": ErrorMessage, "description": "Record not found"},
    },
)
def delete_record(record_id: str, repo: Repository = Depends(get_repository)) -> Response:
    if not repo.delete_record(_require_id(record_id)):
        raise _not_found()
    return Response(status_code=status.HTTP_204_NO_CONTENT)
