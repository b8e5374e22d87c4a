"""
Digital signage sync - pushes currently discounted products to the signage provider.

Every push attempt is written to signage_events. Provider failures come back
as ``{"success": False, "message": ...}``; they never raise out of
send_bulk_update() and never touch prices, which are already committed.

Config (in .env):
    SIGNAGE_URL=https://app.novisign.com/api/.../items/product-pricing
    SIGNAGE_API_KEY=...
    SIGNAGE_TIMEOUT_SEC=10
    SIGNAGE_DISPLAY_LIMIT=20
"""
from datetime import date, timedelta
from typing import Any, Optional
import json
import logging

import httpx
from sqlalchemy import select, case
from sqlalchemy.ext.asyncio import AsyncSession

from wasteless.config import Settings, get_settings
from wasteless.exceptions import ExternalServiceError
from wasteless.models.product import Product
from wasteless.models.signage_event import SignageEvent
from wasteless.services.expiry import days_to_expiry
from wasteless.utils.clock import Clock, SystemClock

logger = logging.getLogger(__name__)

SERVICE_NAME = "Signage"
BULK_UPDATE_EVENT = "bulk-update"


def urgency_for(days: int) -> tuple[str, str]:
    """(level, Hebrew banner text) for a number of days left"""
    if days == 0:
        return "critical", "יום אחרון!"
    if days == 1:
        return "urgent", "מחר יום אחרון!"
    if days <= 3:
        return "warning", f"עוד {days} ימים"
    return "normal", ""


def format_product_for_display(product: Product, today: date) -> dict:
    days = days_to_expiry(product.expiry_date, today)
    level, text = urgency_for(days)
    return {
        "id": product.id,
        "name": product.name_he,
        "nameEn": product.name_en,
        "category": product.category_he,
        "originalPrice": f"{product.base_price:.2f}",
        "discountedPrice": f"{product.current_price:.2f}",
        "discountPercent": product.discount_percent,
        "unit": product.unit,
        "expiryDate": product.expiry_date.isoformat(),
        "daysToExpiry": days,
        "urgencyLevel": level,
        "urgencyText": text,
        "hasDiscount": product.discount_percent > 0,
    }


def _serialize(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return json.dumps(value, ensure_ascii=False, default=str)


class SignageService:

    def __init__(
        self,
        db: AsyncSession,
        settings: Optional[Settings] = None,
        clock: Optional[Clock] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.db = db
        self.settings = settings or get_settings()
        self.clock = clock or SystemClock()
        self.transport = transport

    @property
    def is_configured(self) -> bool:
        return self.settings.signage_configured

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            transport=self.transport,
            headers={"Authorization": f"Bearer {self.settings.SIGNAGE_API_KEY}"},
        )

    async def get_display_data(self) -> list[dict]:
        """Discounted products, most urgent first"""
        today = self.clock.today()
        urgency_rank = case(
            (Product.expiry_date <= today, 0),
            (Product.expiry_date <= today + timedelta(days=1), 1),
            (Product.expiry_date <= today + timedelta(days=2), 2),
            else_=3,
        )
        result = await self.db.execute(
            select(Product)
            .where(Product.discount_percent > 0)
            .order_by(urgency_rank, Product.discount_percent.desc(), Product.id)
            .limit(self.settings.SIGNAGE_DISPLAY_LIMIT)
        )
        return [format_product_for_display(p, today) for p in result.scalars().all()]

    async def log_event(
        self, event_type: str, payload: Any, response_status: int, response_body: Any
    ) -> SignageEvent:
        event = SignageEvent(
            event_type=event_type,
            payload=_serialize(payload),
            response_status=response_status,
            response_body=_serialize(response_body),
        )
        self.db.add(event)
        await self.db.commit()
        return event

    async def _post(self, payload: dict) -> httpx.Response:
        try:
            async with self._client(self.settings.SIGNAGE_TIMEOUT_SEC) as client:
                response = await client.post(self.settings.SIGNAGE_URL, json=payload)
                response.raise_for_status()
                return response
        except httpx.HTTPStatusError as e:
            body = _response_body(e.response)
            raise ExternalServiceError(
                SERVICE_NAME, f"HTTP {e.response.status_code}: {body}",
                status=e.response.status_code, response_body=body,
            ) from e
        except httpx.HTTPError as e:
            raise ExternalServiceError(SERVICE_NAME, str(e) or type(e).__name__, status=0) from e

    async def send_bulk_update(self) -> dict:
        display_data = await self.get_display_data()

        if not self.is_configured:
            await self.log_event(
                BULK_UPDATE_EVENT, display_data, 0, "Signage not configured"
            )
            logger.info("Signage not configured - skipping display push")
            return {
                "success": False,
                "message": "Signage not configured. Set SIGNAGE_URL and SIGNAGE_API_KEY in .env",
                "preview": display_data,
            }

        payload = {
            "productUpdate": display_data,
            "timestamp": self.clock.now().isoformat(),
            "totalProducts": len(display_data),
        }

        try:
            response = await self._post(payload)
        except ExternalServiceError as e:
            await self.log_event(BULK_UPDATE_EVENT, payload, e.status or 0, e.response_body or e.message)
            logger.warning(f"Signage push failed: {e.message}")
            return {
                "success": False,
                "message": f"Failed to update signage: {e.message}",
                "status": e.status,
                "error": e.response_body or e.message,
                "preview": display_data,
            }

        data = _response_body(response)
        await self.log_event(BULK_UPDATE_EVENT, payload, response.status_code, data)
        logger.info(f"Signage updated with {len(display_data)} products")
        return {
            "success": True,
            "message": f"Successfully updated {len(display_data)} products on signage displays",
            "status": response.status_code,
            "data": data,
            "preview": display_data,
        }

    async def recent_events(self, limit: int = 10) -> list[SignageEvent]:
        result = await self.db.execute(
            select(SignageEvent)
            .order_by(SignageEvent.created_at.desc(), SignageEvent.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def test_connection(self) -> dict:
        if not self.is_configured:
            return {"success": False, "message": "Signage URL not configured"}

        base_url = self.settings.SIGNAGE_URL.replace("/items/product-pricing", "")
        try:
            async with self._client(min(self.settings.SIGNAGE_TIMEOUT_SEC, 5.0)) as client:
                response = await client.get(base_url)
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            return {
                "success": False,
                "message": f"Connection failed: HTTP {e.response.status_code}",
                "status": e.response.status_code,
            }
        except httpx.HTTPError as e:
            return {"success": False, "message": f"Connection failed: {e}"}

        return {
            "success": True,
            "message": "Successfully connected to signage provider",
            "status": response.status_code,
        }


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text
