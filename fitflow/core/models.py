from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, Field


class SubscriptionTier(str, Enum):
    FREE = "free"
    PRO = "pro"
    PREMIUM = "premium"
    HYPERTROPHY = "hypertrophy"


class SubscriptionStatus(str, Enum):
    """Local subscription status; mirrors Stripe's values plus ``none``"""
    NONE = "none"
    TRIALING = "trialing"
    ACTIVE = "active"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    INCOMPLETE = "incomplete"
    INCOMPLETE_EXPIRED = "incomplete_expired"
    UNPAID = "unpaid"
    PAUSED = "paused"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class UserSubscriptionRecord(BaseModel):
    """Subscription fields of a user document.

    Field aliases are the camelCase names stored in Firestore and read by the
    web client; other profile fields on the document are ignored.
    """
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    id: str
    subscription_tier: SubscriptionTier = Field(default=SubscriptionTier.FREE, alias='subscriptionTier')
    subscription_status: SubscriptionStatus = Field(default=SubscriptionStatus.NONE, alias='subscriptionStatus')
    stripe_customer_id: Optional[str] = Field(default=None, alias='stripeCustomerId')
    stripe_subscription_id: Optional[str] = Field(default=None, alias='stripeSubscriptionId')
    trial_ends_at: Optional[datetime] = Field(default=None, alias='trialEndsAt')
    updated_at: Optional[datetime] = Field(default=None, alias='updatedAt')
    last_event_at: Optional[datetime] = Field(default=None, alias='lastEventAt')

    @classmethod
    def from_document(cls, doc_id: str, data: Optional[Dict[str, Any]]) -> 'UserSubscriptionRecord':
        """Create a record from a Firestore document snapshot's data"""
        payload = dict(data or {})
        payload['id'] = doc_id
        # Documents written before billing existed may carry nulls
        for key in ('subscriptionTier', 'subscriptionStatus'):
            if payload.get(key) is None:
                payload.pop(key, None)
        return cls.model_validate(payload)

    def to_document(self) -> Dict[str, Any]:
        """Convert the record to the stored document shape (without the id)"""
        data = self.model_dump(by_alias=True, exclude={'id'}, mode='python')
        return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


class Entitlements(BaseModel):
    """Access flags derived from a subscription record; never persisted"""
    model_config = ConfigDict(populate_by_name=True)

    is_pro: bool = Field(alias='isPro')
    is_trialing: bool = Field(alias='isTrialing')
    days_left_in_trial: Optional[int] = Field(default=None, alias='daysLeftInTrial')
    can_access_gated_features: bool = Field(alias='canAccessGatedFeatures')
