"""
Environment configuration for the FitFlow billing backend.
This file manages environment-specific settings and configurations.
"""

import os
from typing import Dict, Any
import logging
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables
load_dotenv()

class Environment:
    """Environment configuration class"""

    # Application Settings
    APP_NAME = "FitFlow"
    APP_VERSION = "1.0.0"
    APP_URL = os.getenv('APP_URL', 'http://localhost:9002')
    DEBUG_MODE = os.getenv('DEBUG_MODE', 'False').lower() == 'true'

    # Subscription Settings
    TRIAL_DAYS = int(os.getenv('TRIAL_DAYS', '14'))
    PAID_TIERS = ('pro', 'premium', 'hypertrophy')

    # Stripe Settings
    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    STRIPE_WEBHOOK_SECRET = os.getenv('STRIPE_WEBHOOK_SECRET')

    # Firebase Settings
    FIREBASE_CREDENTIALS = {
        'project_id': os.getenv('FIREBASE_PROJECT_ID'),
        'private_key_id': os.getenv('FIREBASE_PRIVATE_KEY_ID'),
        'private_key': (os.getenv('FIREBASE_PRIVATE_KEY') or '').replace("\\n", "\n"),
        'client_email': os.getenv('FIREBASE_CLIENT_EMAIL'),
        'client_id': os.getenv('FIREBASE_CLIENT_ID'),
        'client_x509_cert_url': os.getenv('FIREBASE_CLIENT_X509_CERT_URL')
    }

    # Database Settings
    USERS_COLLECTION = os.getenv('USERS_COLLECTION', 'users')

    # Logging Settings
    LOGGING_CONFIG = {
        'level': os.getenv('LOG_LEVEL', 'INFO'),
        'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    }

    @classmethod
    def get_price_ids(cls) -> Dict[str, str]:
        """Get the configured Stripe price ID for each paid tier"""
        price_ids = {}
        for tier in cls.PAID_TIERS:
            price_id = os.getenv(f'STRIPE_{tier.upper()}_PRICE_ID')
            if price_id:
                price_ids[tier] = price_id
        return price_ids

    @classmethod
    def validate_config(cls) -> bool:
        """Validate the configuration"""
        valid = True

        # Check required Stripe settings
        if not cls.STRIPE_SECRET_KEY:
            logger.error("Missing required Stripe setting: STRIPE_SECRET_KEY")
            valid = False
        if not cls.STRIPE_WEBHOOK_SECRET:
            logger.error("Missing required Stripe setting: STRIPE_WEBHOOK_SECRET")
            valid = False

        # Check required Firebase settings
        required_firebase = ['project_id', 'private_key', 'client_email']
        for key in required_firebase:
            if not cls.FIREBASE_CREDENTIALS.get(key):
                logger.error(f"Missing required Firebase setting: {key}")
                valid = False

        if not cls.get_price_ids():
            logger.warning("No Stripe price IDs configured; invoices cannot be mapped to tiers")

        if cls.TRIAL_DAYS < 0:
            logger.error("Invalid trial length setting")
            valid = False

        return valid

    @classmethod
    def get_firebase_credentials(cls) -> Dict[str, Any]:
        """Get the Firebase service account description"""
        return {
            "type": "service_account",
            **cls.FIREBASE_CREDENTIALS,
            "auth_uri": "https://accounts.google.com/o/oauth2/auth",
            "token_uri": "https://oauth2.googleapis.com/token",
            "auth_provider_x509_cert_url": "https://www.googleapis.com/oauth2/v1/certs"
        }

    @classmethod
    def get_logging_config(cls):
        """Get logging settings"""
        return cls.LOGGING_CONFIG.copy()
