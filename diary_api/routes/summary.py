"""
Diary Backend — Summary Route Handler (/summary-data)
======================================================

What:  GET /summary-data?days= returns histogram counters over the records of
       the last `days` UTC calendar days (default 30, today included).
Who:   Called by the diary frontend's statistics page.

Only GET is routed; other methods get 405 from the global handler.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query

from diary_api.config import settings
from diary_api.routes.params import parse_positive_int
from diary_api.schemas.diary import ErrorResponse, SummaryResponse
from diary_api.services.kv_base import KVStore
from diary_api.services.kv_store import get_kv_store
from diary_api.services.summary_service import summary_service

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Summary"])


@router.get(
    "/summary-data",
    response_model=SummaryResponse,
    responses={
        500: {"description": "Store not configured or store failure", "model": ErrorResponse},
    },
    summary="Aggregate diary records over a trailing window",
    description=(
        "Scans every diary record dated within the last `days` calendar days "
        "(UTC, today included) and returns per-answer histograms, per-day "
        "counts, duration totals and the daily maximum severity."
    ),
)
async def summary_data(
    days: Optional[str] = Query(default=None, description="Window length in days (positive integer, default 30)"),
    store: Optional[KVStore] = Depends(get_kv_store),
) -> SummaryResponse:
    window = parse_positive_int(days, settings.summary_default_days)
    return await summary_service.build_summary(store, days=window)
