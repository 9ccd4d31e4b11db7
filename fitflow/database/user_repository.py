from typing import Optional, Dict, Any
import logging

from google.cloud.firestore_v1.base_query import FieldFilter

from config.environment import Environment
from fitflow.core.error_handler import DatabaseError
from fitflow.core.firebase_manager import FirebaseManager
from fitflow.core.models import UserSubscriptionRecord

STRIPE_CUSTOMER_FIELD = 'stripeCustomerId'


class UserRepository:
    """Repository for the subscription fields of user documents.

    Only point reads and merge-writes are issued; there are no transactions,
    batches or listeners.
    """

    def __init__(self, db=None, collection_name: Optional[str] = None):
        self.db = db if db is not None else FirebaseManager.get_instance()
        self.collection_name = collection_name or Environment.USERS_COLLECTION
        self.logger = logging.getLogger(__name__)

    def _collection(self):
        return self.db.collection(self.collection_name)

    def get_by_id(self, user_id: str) -> Optional[UserSubscriptionRecord]:
        """Get a user's subscription record by document ID"""
        try:
            doc = self._collection().document(user_id).get()
        except Exception as e:
            self.logger.error(f"Error getting user {user_id}: {str(e)}")
            raise DatabaseError(f"Failed to read user {user_id}", error_code="READ_FAILED", details=str(e)) from e

        if not doc.exists:
            return None
        return UserSubscriptionRecord.from_document(doc.id, doc.to_dict())

    def find_by_stripe_customer_id(self, customer_id: str) -> Optional[UserSubscriptionRecord]:
        """Resolve a Stripe customer ID to the linked user, if any"""
        if not customer_id:
            return None

        try:
            query = self._collection().where(
                filter=FieldFilter(STRIPE_CUSTOMER_FIELD, '==', customer_id)
            ).limit(2)
            docs = list(query.stream())
        except Exception as e:
            self.logger.error(f"Error looking up user for customer {customer_id}: {str(e)}")
            raise DatabaseError(
                f"Failed to look up customer {customer_id}", error_code="READ_FAILED", details=str(e)
            ) from e

        if not docs:
            return None
        if len(docs) > 1:
            self.logger.warning(
                f"Multiple users linked to Stripe customer {customer_id}; using {docs[0].id}"
            )
        return UserSubscriptionRecord.from_document(docs[0].id, docs[0].to_dict())

    def merge_update(self, user_id: str, fields: Dict[str, Any]) -> None:
        """Write only the given fields to a user document"""
        try:
            self._collection().document(user_id).set(fields, merge=True)
        except Exception as e:
            self.logger.error(f"Error updating user {user_id}: {str(e)}")
            raise DatabaseError(f"Failed to update user {user_id}", error_code="WRITE_FAILED", details=str(e)) from e
        self.logger.info(f"Updated fields {sorted(fields)} for user {user_id}")
