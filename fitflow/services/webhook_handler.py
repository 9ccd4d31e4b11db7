import json
import logging
from typing import Any, Dict, Mapping, Optional, Union

import stripe

from config.environment import Environment
from fitflow.core.error_handler import ConfigurationError, ValidationError, WebhookSignatureError
from fitflow.core.models import UserSubscriptionRecord, as_utc
from fitflow.core.tier_catalog import TierCatalog
from fitflow.database.user_repository import UserRepository
from fitflow.services.event_reducer import SubscriptionPatch, reduce_event


class WebhookHandler:
    """Applies verified Stripe webhook events to user subscription records.

    Each event results in at most one merge-write. Skipped events are reported
    as handled so Stripe does not redeliver them; storage failures propagate
    so the delivery is retried.
    """

    def __init__(self, user_repository: Optional[UserRepository] = None,
                 tier_catalog: Optional[TierCatalog] = None,
                 webhook_secret: Optional[str] = None):
        self.webhook_secret = webhook_secret if webhook_secret is not None else Environment.STRIPE_WEBHOOK_SECRET
        self.user_repository = user_repository or UserRepository()
        self.tier_catalog = tier_catalog or TierCatalog.from_environment()
        self.logger = logging.getLogger(__name__)

    def handle_event(self, payload: Union[bytes, str], sig_header: Optional[str]) -> Dict[str, Any]:
        """Verify and process one incoming Stripe webhook delivery"""
        if not sig_header:
            self.logger.error("Webhook Error: Missing Stripe signature")
            raise WebhookSignatureError("Missing Stripe signature", error_code="MISSING_SIGNATURE")
        if not self.webhook_secret:
            self.logger.error("Webhook Error: Webhook secret is not configured on the server")
            raise ConfigurationError("Webhook secret not configured", error_code="WEBHOOK_SECRET_MISSING")

        if isinstance(payload, bytes):
            payload = payload.decode('utf-8')

        try:
            stripe.WebhookSignature.verify_header(
                payload, sig_header, self.webhook_secret, tolerance=stripe.Webhook.DEFAULT_TOLERANCE
            )
        except stripe.SignatureVerificationError as e:
            self.logger.error(f"Webhook Error: {str(e)}")
            raise WebhookSignatureError("Invalid signature", error_code="INVALID_SIGNATURE") from e

        # A signed body is not necessarily an event object
        try:
            event = json.loads(payload)
        except ValueError as e:
            self.logger.error(f"Webhook Error: invalid payload: {str(e)}")
            raise ValidationError("Invalid payload", error_code="INVALID_PAYLOAD") from e
        if not isinstance(event, dict):
            self.logger.error("Webhook Error: payload is not an event object")
            raise ValidationError("Invalid payload", error_code="INVALID_PAYLOAD")
        return self.process_event(event)

    def process_event(self, event: Mapping[str, Any]) -> Dict[str, Any]:
        """Reduce a verified event to a patch and merge it into the user record"""
        event_type = event.get('type')
        event_id = event.get('id')
        self.logger.info(f"Stripe webhook event received: {event_type} ({event_id})")

        try:
            patch = reduce_event(event, self.tier_catalog)
        except ValidationError as e:
            self.logger.warning(f"Skipping {event_type} event {event_id}: {e.message}")
            return {'status': 'skipped', 'type': event_type, 'reason': e.message}

        if patch is None:
            self.logger.info(f"Unhandled event type {event_type}")
            return {'status': 'unhandled', 'type': event_type}

        user = self._resolve_user(patch)
        if user is None:
            target = f"user {patch.user_id}" if patch.user_id else f"customer {patch.customer_id}"
            self.logger.error(f"Skipping {event_type} event {event_id}: no user found for {target}")
            return {'status': 'skipped', 'type': event_type, 'reason': 'user_not_found'}

        if self._is_stale(user, patch):
            self.logger.warning(
                f"Ignoring out-of-order {event_type} event {event_id} for user {user.id}: "
                f"event time {patch.event_time.isoformat()} precedes {as_utc(user.last_event_at).isoformat()}"
            )
            return {'status': 'ignored', 'type': event_type, 'reason': 'out_of_order', 'user_id': user.id}

        self.user_repository.merge_update(user.id, patch.fields)
        self.logger.info(f"Applied {event_type} event {event_id} to user {user.id}")
        return {'status': 'success', 'type': event_type, 'user_id': user.id}

    def _resolve_user(self, patch: SubscriptionPatch) -> Optional[UserSubscriptionRecord]:
        # Checkout establishes the customer ID, so it is the only event that
        # references the user directly.
        if patch.user_id:
            return self.user_repository.get_by_id(patch.user_id)
        return self.user_repository.find_by_stripe_customer_id(patch.customer_id)

    @staticmethod
    def _is_stale(user: UserSubscriptionRecord, patch: SubscriptionPatch) -> bool:
        if not patch.is_ordered:
            return False
        last_event_at = as_utc(user.last_event_at)
        return last_event_at is not None and patch.event_time < last_event_at
