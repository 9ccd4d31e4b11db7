"""
Entitlement derivation for subscription records.

Entitlements are computed fresh from the stored record on every call so that
a trial expires on its own once ``trialEndsAt`` passes, without any write.
"""

import math
from datetime import datetime, timedelta
from typing import Optional

from .models import (
    Entitlements,
    SubscriptionStatus,
    SubscriptionTier,
    UserSubscriptionRecord,
    as_utc,
    utcnow,
)

ONE_DAY = timedelta(days=1)


def is_pro(record: UserSubscriptionRecord) -> bool:
    """Paid access requires an active status on a non-free tier"""
    return (
        record.subscription_status == SubscriptionStatus.ACTIVE
        and record.subscription_tier != SubscriptionTier.FREE
    )


def is_trialing(record: UserSubscriptionRecord, now: Optional[datetime] = None) -> bool:
    trial_ends_at = as_utc(record.trial_ends_at)
    if record.subscription_status != SubscriptionStatus.TRIALING or trial_ends_at is None:
        return False
    return trial_ends_at > as_utc(now or utcnow())


def days_left_in_trial(record: UserSubscriptionRecord, now: Optional[datetime] = None) -> Optional[int]:
    """Whole days remaining in the trial, rounded up; None when not trialing"""
    now = as_utc(now or utcnow())
    if not is_trialing(record, now):
        return None
    remaining = as_utc(record.trial_ends_at) - now
    return max(0, math.ceil(remaining / ONE_DAY))


def can_access_gated_features(record: UserSubscriptionRecord, now: Optional[datetime] = None) -> bool:
    return is_pro(record) or is_trialing(record, now)


def derive_entitlements(record: UserSubscriptionRecord, now: Optional[datetime] = None) -> Entitlements:
    """Compute every access flag for a record against a single instant"""
    now = as_utc(now or utcnow())
    pro = is_pro(record)
    trialing = is_trialing(record, now)
    return Entitlements(
        is_pro=pro,
        is_trialing=trialing,
        days_left_in_trial=days_left_in_trial(record, now),
        can_access_gated_features=pro or trialing,
    )
