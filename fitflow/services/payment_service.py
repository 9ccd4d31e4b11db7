import stripe
import logging
from typing import Dict, Optional, Any

from config.environment import Environment
from fitflow.core.error_handler import BillingProviderError, ValidationError, handle_error
from fitflow.core.models import SubscriptionTier
from fitflow.core.tier_catalog import TierCatalog
from fitflow.database.user_repository import UserRepository


class PaymentService:
    """Creates Stripe Checkout and Billing Portal sessions"""

    def __init__(self, tier_catalog: Optional[TierCatalog] = None,
                 user_repository: Optional[UserRepository] = None):
        self.stripe = stripe
        self.stripe.api_key = Environment.STRIPE_SECRET_KEY
        self.tier_catalog = tier_catalog or TierCatalog.from_environment()
        self.user_repository = user_repository or UserRepository()
        self.app_url = Environment.APP_URL.rstrip('/')
        self.logger = logging.getLogger(__name__)

    @handle_error
    def create_checkout_session(self, user_id: str, plan: str) -> Dict[str, Any]:
        """Create a subscription-mode Checkout session for a paid tier.

        The internal user ID travels as ``client_reference_id`` so the
        completed-checkout webhook can link the new Stripe customer to it.
        """
        if not user_id or not plan:
            raise ValidationError("Plan ID and User ID are required.", error_code="MISSING_FIELDS")
        if plan == SubscriptionTier.FREE.value:
            raise ValidationError("The free plan does not require checkout.", error_code="INVALID_PLAN")

        price_id = self.tier_catalog.price_for_tier(plan)
        if not price_id:
            raise ValidationError(
                "Invalid plan or plan does not have a Stripe Price ID.", error_code="INVALID_PLAN", details=plan
            )

        params: Dict[str, Any] = {
            'payment_method_types': ['card'],
            'line_items': [{
                'price': price_id,
                'quantity': 1,
            }],
            'mode': 'subscription',
            'success_url': f"{self.app_url}/subscribe?success=true&session_id={{CHECKOUT_SESSION_ID}}",
            'cancel_url': f"{self.app_url}/subscribe?canceled=true",
            'client_reference_id': user_id,
            'metadata': {'user_id': user_id, 'plan': plan},
        }

        # Returning customers keep their existing Stripe customer
        user = self.user_repository.get_by_id(user_id)
        if user and user.stripe_customer_id:
            params['customer'] = user.stripe_customer_id

        try:
            session = self.stripe.checkout.Session.create(**params)
        except stripe.StripeError as e:
            raise self._classify_stripe_error(e, context=f"checkout for user {user_id}") from e

        if not session.id:
            raise BillingProviderError("Failed to create Stripe session.", error_code="CHECKOUT_FAILED")

        self.logger.info(f"Created checkout session {session.id} for user {user_id} ({plan})")
        return {'sessionId': session.id, 'url': session.url}

    @handle_error
    def create_portal_session(self, customer_id: str) -> Dict[str, Any]:
        """Create a Billing Portal session for an existing Stripe customer"""
        if not customer_id:
            raise ValidationError("Stripe Customer ID is required.", error_code="MISSING_FIELDS")

        self.logger.info(f"Creating billing portal session for customer {customer_id}")
        try:
            portal_session = self.stripe.billing_portal.Session.create(
                customer=customer_id,
                return_url=f"{self.app_url}/subscribe",
            )
        except stripe.StripeError as e:
            raise self._classify_stripe_error(e, context=f"portal for customer {customer_id}") from e

        return {'url': portal_session.url}

    def _classify_stripe_error(self, error: stripe.StripeError, context: str) -> BillingProviderError:
        """Translate a Stripe error into an error carrying an HTTP status"""
        message = getattr(error, 'user_message', None) or str(error)
        lowered = message.lower()

        if isinstance(error, stripe.InvalidRequestError):
            if 'no such customer' in lowered:
                status_code, error_message = 404, f"Stripe customer not found: {message}"
            elif 'a similar object exists in' in lowered:
                status_code, error_message = 400, f"Stripe key mode does not match the object: {message}"
            else:
                status_code, error_message = 400, f"Invalid Stripe request: {message}"
        elif isinstance(error, stripe.AuthenticationError):
            status_code, error_message = 401, f"Stripe authentication failed: {message}"
        elif isinstance(error, stripe.APIConnectionError):
            status_code, error_message = 503, f"Could not connect to Stripe: {message}"
        elif isinstance(error, stripe.APIError):
            status_code, error_message = 502, f"Stripe API error: {message}"
        else:
            status_code, error_message = 500, f"Unexpected Stripe error: {message}"

        self.logger.error(f"Stripe error during {context}, returning {status_code}: {error_message}")
        return BillingProviderError(
            error_message,
            error_code=type(error).__name__,
            details=context,
            status_code=status_code
        )
