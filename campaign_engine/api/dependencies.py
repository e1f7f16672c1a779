"""
FastAPI dependencies

Routes reach services through the Container stored on app.state by the
application lifespan.
"""

from fastapi import Request

from campaign_engine.core.container import Container
from campaign_engine.core.services.campaign_service import CampaignService
from campaign_engine.core.services.customer_service import CustomerService, OrderService
from campaign_engine.core.services.delivery_service import DeliveryService
from campaign_engine.core.services.audience_service import AudienceService
from campaign_engine.core.services.stats_service import StatsService


def get_container(request: Request) -> Container:
    return request.app.state.container


def get_campaign_service(request: Request) -> CampaignService:
    return get_container(request).campaigns


def get_audience_service(request: Request) -> AudienceService:
    return get_container(request).audience


def get_delivery_service(request: Request) -> DeliveryService:
    return get_container(request).delivery


def get_customer_service(request: Request) -> CustomerService:
    return get_container(request).customers


def get_order_service(request: Request) -> OrderService:
    return get_container(request).orders


def get_stats_service(request: Request) -> StatsService:
    return get_container(request).stats
