from __future__ import annotations

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from orangepill.errors import NoDataAvailable
from orangepill.services.price import PriceService

router = APIRouter(prefix="/api")


@router.get("/bitcoin/price")
async def get_bitcoin_price(request: Request, response: Response):
    service: PriceService = request.app.state.price_service
    try:
        result = await service.get_price()
    except NoDataAvailable as e:
        # A returned JSONResponse doesn't pick up headers set by dependencies
        limit_headers = {
            k: v for k, v in response.headers.items() if k.lower().startswith("ratelimit-")
        }
        return JSONResponse(
            status_code=503,
            content={"error": "Unable to fetch Bitcoin price", "details": e.details},
            headers=limit_headers,
        )
    return result.to_payload()
