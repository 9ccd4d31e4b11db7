import firebase_admin
from firebase_admin import credentials, firestore
import logging

from config.environment import Environment
from .error_handler import ConfigurationError

logger = logging.getLogger(__name__)

class FirebaseManager:
    """Manages Firebase Admin SDK initialization and Firestore access."""

    _instance = None
    _initialized = False
    _db = None
    _firebase_app = None

    @classmethod
    def get_instance(cls) -> 'FirebaseManager':
        """Get singleton instance of FirebaseManager"""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    def __init__(self):
        """Initialize Firebase connection if not already initialized"""
        self._logger = logging.getLogger(__name__)
        if not FirebaseManager._initialized:
            self.initialize()

    @classmethod
    def initialize(cls) -> bool:
        """Initialize the Firebase Admin SDK and Firestore client"""
        if cls._initialized:
            return True

        service_account = Environment.get_firebase_credentials()
        missing = [
            name for name, key in [
                ('FIREBASE_PROJECT_ID', 'project_id'),
                ('FIREBASE_CLIENT_EMAIL', 'client_email'),
                ('FIREBASE_PRIVATE_KEY', 'private_key'),
            ]
            if not service_account.get(key)
        ]
        if missing:
            logger.error(f"Firebase Admin SDK not initialized, missing: {', '.join(missing)}")
            raise ConfigurationError(
                "Firebase credentials not configured",
                error_code="FIREBASE_NOT_CONFIGURED",
                details=missing
            )

        try:
            cls._firebase_app = firebase_admin.get_app()
            logger.info("Using existing Firebase Admin SDK app")
        except ValueError:
            cred = credentials.Certificate(service_account)
            cls._firebase_app = firebase_admin.initialize_app(cred)
            logger.info("Firebase Admin SDK initialized successfully")

        cls._db = firestore.client(cls._firebase_app)
        cls._initialized = True
        return True

    @property
    def db(self):
        """Get Firestore database instance"""
        if not self._initialized:
            raise RuntimeError("Firebase not initialized")
        return self._db

    def collection(self, name: str):
        """Get a collection reference"""
        return self.db.collection(name)

    @classmethod
    def close(cls):
        """Close Firebase connection"""
        if cls._firebase_app:
            firebase_admin.delete_app(cls._firebase_app)
        cls._initialized = False
        cls._db = None
        cls._firebase_app = None
        cls._instance = None
