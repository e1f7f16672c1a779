"""
Webhook API Routes

Receives vendor delivery receipts.

Endpoints:
    POST /delivery-receipt - Outcome for one delivery record

Unknown record ids are logged and answered with 404; repeated receipts
for an already settled record are acknowledged and change nothing.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ConfigDict, Field

from campaign_engine.api.dependencies import get_delivery_service
from campaign_engine.core.domain.delivery import DeliveryStatus
from campaign_engine.core.services.delivery_service import DeliveryService


logger = logging.getLogger(__name__)
router = APIRouter(tags=["Webhooks"])


class DeliveryReceiptRequest(BaseModel):
    """Vendor receipt payload"""
    model_config = ConfigDict(populate_by_name=True)

    record_id: UUID = Field(alias="recordId")
    status: DeliveryStatus


class DeliveryReceiptResponse(BaseModel):
    """Receipt acknowledgment"""
    success: bool = True
    duplicate: bool = False
    completed: bool = False


@router.post("/delivery-receipt", response_model=DeliveryReceiptResponse)
async def delivery_receipt(
    request: DeliveryReceiptRequest,
    delivery: DeliveryService = Depends(get_delivery_service),
):
    """
    Apply a delivery receipt

    Example payload:
        {
            "recordId": "6c1f...",
            "status": "SENT"
        }
    """
    logger.debug(f"Receipt received: record={request.record_id}, status={request.status.value}")

    result = await delivery.record_receipt(request.record_id, request.status)

    return DeliveryReceiptResponse(
        success=True,
        duplicate=result.duplicate,
        completed=result.completed,
    )
