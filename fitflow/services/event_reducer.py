"""
Reduces Stripe webhook events to partial updates of a user's subscription
fields.

Every patch sets fields to fixed values (never increments or appends) and is
stamped with the event's own ``created`` time, so applying the same event
twice leaves the record exactly as applying it once.

Only patches that write the subscription status take part in event
ordering; checkout linking only records Stripe IDs and is never stale.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Mapping, Optional

from fitflow.core.error_handler import ValidationError
from fitflow.core.models import SubscriptionStatus, SubscriptionTier
from fitflow.core.tier_catalog import TierCatalog


CHECKOUT_COMPLETED = 'checkout.session.completed'
INVOICE_PAID = 'invoice.paid'
INVOICE_PAYMENT_SUCCEEDED = 'invoice.payment_succeeded'
INVOICE_PAYMENT_FAILED = 'invoice.payment_failed'
SUBSCRIPTION_UPDATED = 'customer.subscription.updated'
SUBSCRIPTION_DELETED = 'customer.subscription.deleted'


class MalformedEventError(ValidationError):
    """Event payload lacks a field the reducer needs"""
    def __init__(self, message, details=None):
        super().__init__(message, error_code="MALFORMED_EVENT", details=details)


@dataclass(frozen=True)
class SubscriptionPatch:
    """Fields to merge into one user record.

    Exactly one of ``user_id`` (direct reference) or ``customer_id`` (lookup
    key) identifies the target.
    """
    event_type: str
    event_time: datetime
    fields: Dict[str, Any] = field(default_factory=dict)
    user_id: Optional[str] = None
    customer_id: Optional[str] = None

    @property
    def is_ordered(self) -> bool:
        return 'lastEventAt' in self.fields


def _get(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, Mapping):
        return obj.get(key)
    return getattr(obj, key, None)


def _dig(obj: Any, *path: str) -> Any:
    for key in path:
        obj = _get(obj, key)
        if obj is None:
            return None
    return obj


def _id_of(value: Any) -> Optional[str]:
    """Stripe references may arrive as an ID string or an expanded object"""
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    return _get(value, 'id')


def _require(value: Optional[str], name: str, event_type: str) -> str:
    if not value:
        raise MalformedEventError(f"{event_type} event is missing {name}", details={'field': name})
    return value


def _event_time(event: Mapping) -> datetime:
    created = _get(event, 'created')
    if created is None:
        raise MalformedEventError("Event is missing its created timestamp", details={'field': 'created'})
    try:
        return datetime.fromtimestamp(int(created), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError) as e:
        raise MalformedEventError(f"Invalid event timestamp: {created}", details={'field': 'created'}) from e


def _stamped(fields: Dict[str, Any], event_time: datetime, ordered: bool = True) -> Dict[str, Any]:
    stamped = dict(fields)
    stamped['updatedAt'] = event_time
    if ordered:
        stamped['lastEventAt'] = event_time
    return stamped


def _invoice_subscription_id(invoice: Any) -> Optional[str]:
    # Older API versions put the subscription on the invoice itself
    return _id_of(_get(invoice, 'subscription')) or _id_of(
        _dig(invoice, 'parent', 'subscription_details', 'subscription')
    )


def _invoice_price_id(invoice: Any) -> Optional[str]:
    lines = _dig(invoice, 'lines', 'data') or []
    if not lines:
        return None
    first_line = lines[0]
    return _id_of(_get(first_line, 'price')) or _id_of(
        _dig(first_line, 'pricing', 'price_details', 'price')
    )


def _checkout_completed(session: Any, event_type: str, event_time: datetime, catalog: TierCatalog) -> SubscriptionPatch:
    # Payment capture is asynchronous; only link the Stripe IDs here and let
    # the paid invoice grant access.
    user_id = _require(_get(session, 'client_reference_id'), 'client_reference_id', event_type)
    customer_id = _require(_id_of(_get(session, 'customer')), 'customer', event_type)
    subscription_id = _require(_id_of(_get(session, 'subscription')), 'subscription', event_type)
    return SubscriptionPatch(
        event_type=event_type,
        event_time=event_time,
        user_id=user_id,
        fields=_stamped({
            'stripeCustomerId': customer_id,
            'stripeSubscriptionId': subscription_id,
        }, event_time, ordered=False),
    )


def _invoice_paid(invoice: Any, event_type: str, event_time: datetime, catalog: TierCatalog) -> SubscriptionPatch:
    customer_id = _require(_id_of(_get(invoice, 'customer')), 'customer', event_type)
    subscription_id = _require(_invoice_subscription_id(invoice), 'subscription', event_type)
    price_id = _require(_invoice_price_id(invoice), 'line item price', event_type)

    tier = catalog.tier_for_price(price_id)
    if tier is None:
        raise MalformedEventError(f"Price {price_id} is not in the tier catalog", details={'price_id': price_id})

    return SubscriptionPatch(
        event_type=event_type,
        event_time=event_time,
        customer_id=customer_id,
        fields=_stamped({
            'subscriptionTier': tier.value,
            'subscriptionStatus': SubscriptionStatus.ACTIVE.value,
            'stripeSubscriptionId': subscription_id,
        }, event_time),
    )


def _subscription_updated(subscription: Any, event_type: str, event_time: datetime, catalog: TierCatalog) -> SubscriptionPatch:
    customer_id = _require(_id_of(_get(subscription, 'customer')), 'customer', event_type)
    subscription_id = _require(_id_of(_get(subscription, 'id')), 'id', event_type)
    raw_status = _require(_get(subscription, 'status'), 'status', event_type)
    try:
        status = SubscriptionStatus(raw_status)
    except ValueError as e:
        raise MalformedEventError(f"Unknown subscription status: {raw_status}", details={'status': raw_status}) from e

    return SubscriptionPatch(
        event_type=event_type,
        event_time=event_time,
        customer_id=customer_id,
        fields=_stamped({
            'subscriptionStatus': status.value,
            'stripeSubscriptionId': subscription_id,
        }, event_time),
    )


def _subscription_deleted(subscription: Any, event_type: str, event_time: datetime, catalog: TierCatalog) -> SubscriptionPatch:
    customer_id = _require(_id_of(_get(subscription, 'customer')), 'customer', event_type)
    return SubscriptionPatch(
        event_type=event_type,
        event_time=event_time,
        customer_id=customer_id,
        fields=_stamped({
            'subscriptionTier': SubscriptionTier.FREE.value,
            'subscriptionStatus': SubscriptionStatus.CANCELED.value,
            'stripeSubscriptionId': None,
        }, event_time),
    )


def _invoice_payment_failed(invoice: Any, event_type: str, event_time: datetime, catalog: TierCatalog) -> SubscriptionPatch:
    customer_id = _require(_id_of(_get(invoice, 'customer')), 'customer', event_type)
    return SubscriptionPatch(
        event_type=event_type,
        event_time=event_time,
        customer_id=customer_id,
        fields=_stamped({
            'subscriptionStatus': SubscriptionStatus.PAST_DUE.value,
        }, event_time),
    )


EVENT_REDUCERS: Dict[str, Callable[..., SubscriptionPatch]] = {
    CHECKOUT_COMPLETED: _checkout_completed,
    INVOICE_PAID: _invoice_paid,
    INVOICE_PAYMENT_SUCCEEDED: _invoice_paid,
    SUBSCRIPTION_UPDATED: _subscription_updated,
    SUBSCRIPTION_DELETED: _subscription_deleted,
    INVOICE_PAYMENT_FAILED: _invoice_payment_failed,
}


def reduce_event(event: Mapping, catalog: TierCatalog) -> Optional[SubscriptionPatch]:
    """Compute the patch for a verified Stripe event.

    Returns None for event types that do not affect subscriptions. Raises
    MalformedEventError when a supported event lacks required data.
    """
    event_type = _get(event, 'type')
    reducer = EVENT_REDUCERS.get(event_type)
    if reducer is None:
        return None

    obj = _dig(event, 'data', 'object')
    if obj is None:
        raise MalformedEventError(f"{event_type} event has no data object")

    return reducer(obj, event_type, _event_time(event), catalog)
