"""
Digital signage API endpoints
"""
from fastapi import APIRouter, Depends, Query
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from wasteless.api.deps import get_signage_service
from wasteless.config import SIGNAGE_URL_PLACEHOLDER
from wasteless.services.signage_service import SignageService
from wasteless.utils.helpers import safe_json_parse

router = APIRouter()


@router.get("/preview")
async def preview_display(service: SignageService = Depends(get_signage_service)):
    products = await service.get_display_data()
    return {
        "products": products,
        "count": len(products),
        "timestamp": service.clock.now().isoformat(),
    }


@router.post("/bulk-update")
async def bulk_update(service: SignageService = Depends(get_signage_service)):
    result = await service.send_bulk_update()
    if result["success"]:
        return result
    return JSONResponse(status_code=result.get("status") or 400, content=jsonable_encoder(result))


@router.get("/events")
async def recent_events(
    limit: int = Query(10, ge=1, le=200),
    service: SignageService = Depends(get_signage_service),
):
    events = await service.recent_events(limit)
    return [
        {
            "id": e.id,
            "event_type": e.event_type,
            "payload": safe_json_parse(e.payload, e.payload),
            "response_status": e.response_status,
            "response_body": safe_json_parse(e.response_body, e.response_body),
            "created_at": e.created_at,
        }
        for e in events
    ]


@router.get("/test")
async def test_connection(service: SignageService = Depends(get_signage_service)):
    return await service.test_connection()


@router.get("/status")
async def signage_status(service: SignageService = Depends(get_signage_service)):
    settings = service.settings
    configured = service.is_configured
    return {
        "configured": configured,
        "url_set": bool(settings.SIGNAGE_URL) and SIGNAGE_URL_PLACEHOLDER not in settings.SIGNAGE_URL,
        "api_key_set": bool(settings.SIGNAGE_API_KEY),
        "message": "Signage is configured" if configured
        else "Please configure SIGNAGE_URL and SIGNAGE_API_KEY in .env file",
    }

