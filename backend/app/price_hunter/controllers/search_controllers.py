"""FastAPI endpoints for cross-store price searches."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from price_hunter.models.search_models import SearchResponse
from price_hunter.services.price_search.models import InvalidSessionTransition
from price_hunter.services.price_search.service import (
    PriceSearchService,
    create_price_search_service,
)

logger = logging.getLogger("price_search.api")

search_router = APIRouter(tags=["Search"])


def get_price_search_service(request: Request) -> PriceSearchService:
    """Build a service sharing the application's HTTP client."""
    return create_price_search_service(request.app.state.http_client)


@search_router.get(
    "/search",
    responses={
        200: {"model": SearchResponse, "description": "Grouped offers"},
    },
)
async def search_prices(
    q: str = Query("", description="Product to look for."),
    service: PriceSearchService = Depends(get_price_search_service),
) -> SearchResponse:
    """Search every store for ``q`` and return grouped offers."""
    query = q.strip()
    if not query:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Missing query parameter ?q=",
        )

    try:
        outcome = await service.search(query)
    except InvalidSessionTransition as exc:
        logger.exception("Search for '%s' failed", query)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        )

    return SearchResponse.from_outcome(outcome)
