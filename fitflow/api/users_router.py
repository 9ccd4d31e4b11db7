from fastapi import APIRouter, Depends, HTTPException

from fitflow.api.dependencies import get_subscription_service
from fitflow.services.subscription_service import SubscriptionService

users_router = APIRouter(prefix="/api/users", tags=["users"])


@users_router.get("/{user_id}/entitlements")
def get_entitlements(user_id: str, subscription_service: SubscriptionService = Depends(get_subscription_service)):
    entitlements = subscription_service.get_entitlements(user_id)
    if entitlements is None:
        raise HTTPException(status_code=404, detail=f"User {user_id} not found")
    return entitlements.model_dump(by_alias=True)


@users_router.post("/{user_id}/trial")
def start_trial(user_id: str, subscription_service: SubscriptionService = Depends(get_subscription_service)):
    """Called once after signup to open the free trial"""
    subscription_service.start_trial(user_id)
    return subscription_service.get_entitlements(user_id).model_dump(by_alias=True)
