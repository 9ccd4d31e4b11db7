from typing import Optional
from datetime import datetime, timedelta
import logging

from config.environment import Environment
from fitflow.core.entitlements import derive_entitlements
from fitflow.core.models import Entitlements, SubscriptionStatus, SubscriptionTier, as_utc, utcnow
from fitflow.database.user_repository import UserRepository


class SubscriptionService:
    def __init__(self, user_repository: Optional[UserRepository] = None, trial_days: Optional[int] = None):
        self.user_repository = user_repository or UserRepository()
        self.trial_days = Environment.TRIAL_DAYS if trial_days is None else trial_days
        self.logger = logging.getLogger(__name__)

    def start_trial(self, user_id: str, now: Optional[datetime] = None) -> None:
        """Initialize subscription fields for a newly signed-up user.

        The trial end is fixed at signup. Users who already have a trial, a
        subscription status or a Stripe customer are left untouched.
        """
        existing = self.user_repository.get_by_id(user_id)
        if existing and existing.trial_ends_at is not None:
            self.logger.info(f"User {user_id} already has a trial ending {existing.trial_ends_at.isoformat()}")
            return
        if existing and (existing.subscription_status != SubscriptionStatus.NONE or existing.stripe_customer_id):
            self.logger.info(
                f"User {user_id} already has subscription state "
                f"({existing.subscription_status.value}, customer {existing.stripe_customer_id}); not starting a trial"
            )
            return

        now = as_utc(now or utcnow())
        self.user_repository.merge_update(user_id, {
            'subscriptionTier': SubscriptionTier.FREE.value,
            'subscriptionStatus': SubscriptionStatus.TRIALING.value,
            'trialEndsAt': now + timedelta(days=self.trial_days),
            'updatedAt': now,
        })
        self.logger.info(f"Started {self.trial_days}-day trial for user {user_id}")

    def get_entitlements(self, user_id: str, now: Optional[datetime] = None) -> Optional[Entitlements]:
        """Get the access flags for a user, or None if the user does not exist"""
        user = self.user_repository.get_by_id(user_id)
        if user is None:
            self.logger.warning(f"Entitlements requested for unknown user {user_id}")
            return None
        return derive_entitlements(user, now)

    def can_access_gated_features(self, user_id: str, now: Optional[datetime] = None) -> bool:
        """Check the single flag every feature gate consults"""
        entitlements = self.get_entitlements(user_id, now)
        return bool(entitlements and entitlements.can_access_gated_features)
