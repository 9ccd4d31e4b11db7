"""
Service providers for the API routers.

Each provider builds its service once per process; tests replace them through
``app.dependency_overrides``.
"""

from functools import lru_cache

from fitflow.core.tier_catalog import TierCatalog
from fitflow.database.user_repository import UserRepository
from fitflow.services.payment_service import PaymentService
from fitflow.services.subscription_service import SubscriptionService
from fitflow.services.webhook_handler import WebhookHandler


@lru_cache()
def get_user_repository() -> UserRepository:
    return UserRepository()


@lru_cache()
def get_tier_catalog() -> TierCatalog:
    return TierCatalog.from_environment()


def get_webhook_handler() -> WebhookHandler:
    return WebhookHandler(user_repository=get_user_repository(), tier_catalog=get_tier_catalog())


def get_payment_service() -> PaymentService:
    return PaymentService(tier_catalog=get_tier_catalog(), user_repository=get_user_repository())


def get_subscription_service() -> SubscriptionService:
    return SubscriptionService(user_repository=get_user_repository())
