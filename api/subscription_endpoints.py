"""Subscription Endpoints."""

from fastapi import APIRouter, Depends

from core.responses import api_response
from core.validation import PageRequest
from services.subscription_service import SubscriptionService

from .dependencies import get_page_request, get_subscription_service, get_viewer_id

router = APIRouter(prefix="/subscriptions", tags=["Subscriptions"])


@router.post("/c/{channel_id}")
async def toggle_subscription(
    channel_id: str,
    viewer_id: str = Depends(get_viewer_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    state = await service.toggle_subscription(channel_id, viewer_id)
    message = "Subscribed successfully" if state["isSubscribed"] else "Unsubscribed successfully"
    return api_response(200, state, message)


@router.get("/c/{channel_id}")
async def channel_subscribers(
    channel_id: str,
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    subscribers = await service.channel_subscribers(channel_id, viewer_id, page_request)
    return api_response(200, subscribers, "Subscribers fetched successfully")


@router.get("/s/{subscriber_id}")
async def subscribed_channels(
    subscriber_id: str,
    page_request: PageRequest = Depends(get_page_request),
    viewer_id: str = Depends(get_viewer_id),
    service: SubscriptionService = Depends(get_subscription_service),
):
    channels = await service.subscribed_channels(subscriber_id, viewer_id, page_request)
    return api_response(200, channels, "Subscribed channels fetched successfully")
