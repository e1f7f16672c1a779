"""
Campaign API Routes (v1)

RESTful endpoints for campaign management.

Endpoints:
    POST   /campaigns/preview          - Count the audience of a rule set
    POST   /campaigns                  - Create campaign and start dispatch
    GET    /campaigns                  - List campaigns (newest first)
    GET    /campaigns/{id}             - Get campaign
    GET    /campaigns/{id}/deliveries  - List delivery records
"""

from typing import List, Optional, Union
from uuid import UUID
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field, field_validator

from campaign_engine.api.dependencies import get_audience_service, get_campaign_service
from campaign_engine.core.domain.campaign import Campaign, CampaignStatus
from campaign_engine.core.domain.delivery import DeliveryRecord, DeliveryStatus
from campaign_engine.core.domain.rules import Rule, RuleField, RuleLogic, RuleOperator
from campaign_engine.core.services.audience_service import AudienceService
from campaign_engine.core.services.campaign_service import CampaignService


router = APIRouter(prefix="/campaigns", tags=["Campaigns"])


# Request/Response Models
class RuleModel(BaseModel):
    """Audience rule in wire format"""
    field: RuleField
    operator: RuleOperator
    value: Union[str, int, float]
    logic: RuleLogic = RuleLogic.AND

    @field_validator("value")
    @classmethod
    def value_as_text(cls, v):
        """Rule values are kept as entered; numbers become their text form"""
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        return str(v)

    @field_validator("logic", mode="before")
    @classmethod
    def default_logic(cls, v):
        return v or RuleLogic.AND

    def to_rule(self) -> Rule:
        return Rule(
            field=self.field,
            operator=self.operator,
            value=self.value,
            logic=self.logic,
        )


class PreviewRequest(BaseModel):
    """Request to count an audience"""
    rules: List[RuleModel] = []


class PreviewResponse(BaseModel):
    count: int


class CreateCampaignRequest(BaseModel):
    """Request to create a campaign"""
    name: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    rules: List[RuleModel] = []


class CampaignResponse(BaseModel):
    """Campaign response"""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    name: str
    message: str
    rules: List[RuleModel]
    status: CampaignStatus
    audience_size: int = Field(alias="audienceSize")
    sent_count: int = Field(alias="sentCount")
    failed_count: int = Field(alias="failedCount")
    delivery_rate: float = Field(alias="deliveryRate")
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_domain(cls, campaign: Campaign) -> "CampaignResponse":
        return cls(
            id=campaign.id,
            name=campaign.name,
            message=campaign.message,
            rules=[RuleModel(**rule.to_dict()) for rule in campaign.rules],
            status=campaign.status,
            audience_size=campaign.audience_size,
            sent_count=campaign.sent_count,
            failed_count=campaign.failed_count,
            delivery_rate=campaign.delivery_rate,
            created_at=campaign.created_at,
            updated_at=campaign.updated_at,
        )


class DeliveryRecordResponse(BaseModel):
    """Delivery record response"""
    model_config = ConfigDict(populate_by_name=True)

    id: UUID
    campaign_id: UUID = Field(alias="campaignId")
    customer_id: UUID = Field(alias="customerId")
    customer_email: str = Field(alias="customerEmail")
    message: str
    status: DeliveryStatus
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_domain(cls, record: DeliveryRecord) -> "DeliveryRecordResponse":
        return cls(
            id=record.id,
            campaign_id=record.campaign_id,
            customer_id=record.customer_id,
            customer_email=record.customer_email,
            message=record.message,
            status=record.status,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


# Endpoints
@router.post("/preview", response_model=PreviewResponse)
async def preview_audience(
    request: PreviewRequest,
    audience: AudienceService = Depends(get_audience_service),
):
    """
    Preview audience size

    Uses the same rule compiler as dispatch.
    """
    count = await audience.preview([rule.to_rule() for rule in request.rules])
    return PreviewResponse(count=count)


@router.post(
    "",
    response_model=CampaignResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_campaign(
    request: CreateCampaignRequest,
    service: CampaignService = Depends(get_campaign_service),
):
    """
    Create a new campaign

    The audience size is fixed now; dispatch starts in the background and
    the response returns while the campaign is still pending or sending.
    """
    campaign = await service.create_campaign(
        name=request.name,
        message=request.message,
        rules=[rule.to_rule() for rule in request.rules],
    )

    service.launch_in_background(campaign)

    return CampaignResponse.from_domain(campaign)


@router.get("", response_model=List[CampaignResponse])
async def list_campaigns(
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CampaignService = Depends(get_campaign_service),
):
    """List campaigns, newest first"""
    campaigns = await service.list_campaigns(limit=limit, offset=offset)
    return [CampaignResponse.from_domain(c) for c in campaigns]


@router.get("/{campaign_id}", response_model=CampaignResponse)
async def get_campaign(
    campaign_id: UUID,
    service: CampaignService = Depends(get_campaign_service),
):
    """Get campaign by ID"""
    campaign = await service.get_campaign(campaign_id)
    return CampaignResponse.from_domain(campaign)


@router.get("/{campaign_id}/deliveries", response_model=List[DeliveryRecordResponse])
async def list_deliveries(
    campaign_id: UUID,
    status_filter: Optional[DeliveryStatus] = Query(None, alias="status"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    service: CampaignService = Depends(get_campaign_service),
):
    """List a campaign's delivery records with optional status filter"""
    records = await service.get_deliveries(
        campaign_id,
        limit=limit,
        offset=offset,
        status=status_filter,
    )
    return [DeliveryRecordResponse.from_domain(r) for r in records]
