"""
Diary Backend — Record Route Handlers (/api)
=============================================

What:  One resource path, four methods:
           POST   /api                  create a record from a JSON object
           GET    /api?limit=&cursor=   list a page of records
           PUT    /api                  replace a record's data ({key, data})
           DELETE /api?key=             delete a record
How:   Decode the request, delegate to RecordService, return its model.
       Any other method on /api is answered 405 by the global handler.
Who:   Called by the diary frontend (questionnaire form and history view).

Error responses (handled by global exception handlers):
    HTTP 400: Malformed JSON body, invalid key, invalid cursor (BadRequestError)
    HTTP 500: No store binding (StoreUnavailableError) or store failure
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Request

from diary_api.config import settings
from diary_api.routes.params import parse_positive_int, read_json_object
from diary_api.schemas.diary import DiaryListResponse, ErrorResponse, KeyResponse
from diary_api.services.kv_base import KVStore
from diary_api.services.kv_store import get_kv_store
from diary_api.services.record_service import record_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Records"])

_ERROR_RESPONSES = {
    400: {"description": "Malformed body or invalid key", "model": ErrorResponse},
    500: {"description": "Store not configured or store failure", "model": ErrorResponse},
}


@router.post(
    "/api",
    response_model=KeyResponse,
    responses=_ERROR_RESPONSES,
    summary="Create a diary record",
    description=(
        "Stores the submitted JSON object as a new diary record under "
        "diary:<today>:<uuid>. Any `passcode` field is dropped before storage."
    ),
)
async def create_record(
    request: Request,
    store: Optional[KVStore] = Depends(get_kv_store),
) -> KeyResponse:
    payload = await read_json_object(request)
    return await record_service.create_record(store, payload)


@router.get(
    "/api",
    response_model=DiaryListResponse,
    responses={500: _ERROR_RESPONSES[500], 400: _ERROR_RESPONSES[400]},
    summary="List diary records",
    description=(
        "Returns one page of records in key order (oldest date first). "
        "Pass the returned cursor back to fetch the next page; it is null "
        "once every record has been listed."
    ),
)
async def list_records(
    limit: Optional[str] = Query(default=None, description="Page size (positive integer, default 20)"),
    cursor: Optional[str] = Query(default=None, description="Cursor from the previous page"),
    store: Optional[KVStore] = Depends(get_kv_store),
) -> DiaryListResponse:
    """
    Example client usage:
        Page 1: GET /api?limit=20
        Page 2: GET /api?limit=20&cursor=<cursor from page 1>
    """
    page_size = parse_positive_int(limit, settings.list_default_limit)
    return await record_service.list_records(store, limit=page_size, cursor=cursor or None)


@router.put(
    "/api",
    response_model=KeyResponse,
    responses=_ERROR_RESPONSES,
    summary="Update a diary record",
    description=(
        "Replaces the data of the record at `key`, keeping its original "
        "received_at and stamping updated_at. An unknown key is created."
    ),
)
async def update_record(
    request: Request,
    store: Optional[KVStore] = Depends(get_kv_store),
) -> KeyResponse:
    payload = await read_json_object(request)
    return await record_service.update_record(store, payload.get("key"), payload.get("data"))


@router.delete(
    "/api",
    response_model=KeyResponse,
    responses=_ERROR_RESPONSES,
    summary="Delete a diary record",
    description="Permanently deletes the record at `key`. Unknown keys also succeed.",
)
async def delete_record(
    key: str = Query(default="", description="RecordKey to delete (diary:...)"),
    store: Optional[KVStore] = Depends(get_kv_store),
) -> KeyResponse:
    return await record_service.delete_record(store, key)
