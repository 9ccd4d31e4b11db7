import unittest
from datetime import datetime, timezone

from fitflow.core.tier_catalog import TierCatalog
from fitflow.services.event_reducer import MalformedEventError, reduce_event
from tests.mocks.stripe_events import (
    PRO_PRICE_ID,
    T0,
    checkout_completed,
    invoice_paid,
    invoice_paid_current_api,
    invoice_payment_failed,
    make_event,
    subscription_deleted,
    subscription_updated,
)

EVENT_TIME = datetime.fromtimestamp(T0, tz=timezone.utc)


class TestEventReducer(unittest.TestCase):
    def setUp(self):
        self.catalog = TierCatalog({PRO_PRICE_ID: 'pro'})

    def test_checkout_completed_links_stripe_ids_without_granting_access(self):
        patch = reduce_event(checkout_completed(), self.catalog)
        self.assertEqual(patch.user_id, 'user_123')
        self.assertIsNone(patch.customer_id)
        self.assertEqual(patch.fields, {
            'stripeCustomerId': 'cus_1',
            'stripeSubscriptionId': 'sub_1',
            'updatedAt': EVENT_TIME,
        })
        self.assertFalse(patch.is_ordered)
        self.assertNotIn('subscriptionStatus', patch.fields)
        self.assertNotIn('subscriptionTier', patch.fields)

    def test_checkout_completed_without_user_reference(self):
        with self.assertRaises(MalformedEventError) as ctx:
            reduce_event(checkout_completed(user_id=None), self.catalog)
        self.assertIn('client_reference_id', ctx.exception.message)

    def test_invoice_paid_grants_tier(self):
        patch = reduce_event(invoice_paid(), self.catalog)
        self.assertEqual(patch.customer_id, 'cus_1')
        self.assertIsNone(patch.user_id)
        self.assertEqual(patch.fields['subscriptionTier'], 'pro')
        self.assertEqual(patch.fields['subscriptionStatus'], 'active')
        self.assertEqual(patch.fields['stripeSubscriptionId'], 'sub_1')
        self.assertTrue(patch.is_ordered)

    def test_legacy_payment_succeeded_event_is_treated_as_paid(self):
        patch = reduce_event(invoice_paid(event_type='invoice.payment_succeeded'), self.catalog)
        self.assertEqual(patch.fields['subscriptionStatus'], 'active')

    def test_invoice_paid_current_api_shape(self):
        patch = reduce_event(invoice_paid_current_api(), self.catalog)
        self.assertEqual(patch.fields['subscriptionTier'], 'pro')
        self.assertEqual(patch.fields['stripeSubscriptionId'], 'sub_1')

    def test_invoice_paid_with_expanded_customer(self):
        event = invoice_paid()
        event['data']['object']['customer'] = {'id': 'cus_1', 'object': 'customer'}
        patch = reduce_event(event, self.catalog)
        self.assertEqual(patch.customer_id, 'cus_1')

    def test_invoice_without_line_items_is_malformed(self):
        event = invoice_paid()
        event['data']['object']['lines'] = {'data': []}
        with self.assertRaises(MalformedEventError):
            reduce_event(event, self.catalog)

    def test_invoice_with_unknown_price_is_malformed(self):
        with self.assertRaises(MalformedEventError) as ctx:
            reduce_event(invoice_paid(price='price_unknown'), self.catalog)
        self.assertIn('price_unknown', ctx.exception.message)

    def test_subscription_updated_passes_status_through(self):
        for status in ('active', 'past_due', 'unpaid', 'incomplete', 'trialing'):
            with self.subTest(status=status):
                patch = reduce_event(subscription_updated(status=status, subscription='sub_2'), self.catalog)
                self.assertEqual(patch.fields['subscriptionStatus'], status)
                self.assertEqual(patch.fields['stripeSubscriptionId'], 'sub_2')
                self.assertNotIn('subscriptionTier', patch.fields)

    def test_subscription_updated_without_subscription_id(self):
        event = subscription_updated()
        del event['data']['object']['id']
        with self.assertRaises(MalformedEventError):
            reduce_event(event, self.catalog)

    def test_subscription_updated_with_unknown_status(self):
        with self.assertRaises(MalformedEventError):
            reduce_event(subscription_updated(status='suspended'), self.catalog)

    def test_subscription_deleted_downgrades_immediately(self):
        patch = reduce_event(subscription_deleted(), self.catalog)
        self.assertEqual(patch.fields['subscriptionTier'], 'free')
        self.assertEqual(patch.fields['subscriptionStatus'], 'canceled')
        self.assertIn('stripeSubscriptionId', patch.fields)
        self.assertIsNone(patch.fields['stripeSubscriptionId'])

    def test_payment_failed_only_touches_status(self):
        patch = reduce_event(invoice_payment_failed(), self.catalog)
        self.assertEqual(set(patch.fields), {'subscriptionStatus', 'updatedAt', 'lastEventAt'})
        self.assertEqual(patch.fields['subscriptionStatus'], 'past_due')

    def test_missing_customer_is_malformed(self):
        with self.assertRaises(MalformedEventError):
            reduce_event(invoice_payment_failed(customer=''), self.catalog)

    def test_unhandled_event_type(self):
        self.assertIsNone(reduce_event(make_event('customer.created', {'id': 'cus_1'}), self.catalog))

    def test_missing_created_timestamp(self):
        event = subscription_deleted()
        del event['created']
        with self.assertRaises(MalformedEventError):
            reduce_event(event, self.catalog)

    def test_missing_data_object(self):
        event = subscription_deleted()
        event['data'] = {}
        with self.assertRaises(MalformedEventError):
            reduce_event(event, self.catalog)

    def test_same_event_reduces_to_same_patch(self):
        self.assertEqual(reduce_event(invoice_paid(), self.catalog), reduce_event(invoice_paid(), self.catalog))


if __name__ == '__main__':
    unittest.main()
