import os
import json
from dotenv import load_dotenv

from hvut.tax_tables import DEFAULT_TAX_YEAR

# Load environment variables from both root and package .env files
# Root .env first (for NODE_ENV), then package .env (for other settings)
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '..', '.env'))  # Root .env
load_dotenv(dotenv_path=os.path.join(os.path.dirname(__file__), '.env'))        # Package .env


def _float_env(name, default):
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return float(value)


def _tiers_env(name, default):
    """Parse a JSON list of [min_count, per_vehicle_fee] pairs"""
    value = os.getenv(name)
    if not value:
        return default
    return tuple((int(count), float(fee)) for count, fee in json.loads(value))


class Config:
    """Application configuration class"""

    # Environment Configuration - Use NODE_ENV from root .env as primary control
    NODE_ENV = os.getenv("NODE_ENV", "development")
    FLASK_ENV = NODE_ENV
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-secret-key")

    # Database Configuration
    DATABASE_URL = os.getenv('DATABASE_URL', "sqlite:///./hvut.db")

    # Firebase Configuration
    FIREBASE_ADMIN_KEY_JSON = os.getenv('FIREBASE_ADMIN_KEY_JSON')

    # Stripe Configuration
    STRIPE_SECRET_KEY = os.getenv('STRIPE_SECRET_KEY')
    STRIPE_PUBLISHABLE_KEY = os.getenv('STRIPE_PUBLISHABLE_KEY')

    # FMCSA QCMobile Configuration
    FMCSA_API_KEY = os.getenv('FMCSA_API_KEY')
    FMCSA_USE_MOCK = os.getenv('FMCSA_USE_MOCK', 'false').lower() == 'true'
    FMCSA_TIMEOUT = _float_env('FMCSA_TIMEOUT', 10.0)

    # CORS Configuration
    CORS_CONFIG = {
        "resources": {r"/*": {"origins": [
            "http://localhost:3000",
            "http://localhost:3001",
            "https://quicktrucktax.com",
            "https://www.quicktrucktax.com"
        ]}},
        "methods": ["GET", "POST", "PATCH", "OPTIONS", "DELETE"],
        "allow_headers": ["Content-Type", "Authorization"]
    }

    # File paths
    AUDIT_LOG_FILE = os.getenv('AUDIT_LOG_FILE', "audit.log")

    # Tax year (start year of the July-June period)
    TAX_YEAR = int(os.getenv('TAX_YEAR', str(DEFAULT_TAX_YEAR)))

    # Pricing - business constants, overridable per deployment
    STANDARD_SERVICE_FEE = _float_env('STANDARD_SERVICE_FEE', 34.99)
    BULK_FEE_TIERS = _tiers_env('BULK_FEE_TIERS', ((2, 29.99), (10, 24.99), (25, 19.99)))
    AMENDMENT_SERVICE_FEE = _float_env('AMENDMENT_SERVICE_FEE', 10.00)
    REFUND_SERVICE_FEE = _float_env('REFUND_SERVICE_FEE', 34.99)
    SUSPENDED_ONLY_SERVICE_FEE = _float_env('SUSPENDED_ONLY_SERVICE_FEE', None)
    DEFAULT_SALES_TAX_RATE = _float_env('DEFAULT_SALES_TAX_RATE', 0.0)

    @classmethod
    def stripe_configured(cls):
        """True when both Stripe keys are present"""
        return bool(cls.STRIPE_SECRET_KEY and cls.STRIPE_PUBLISHABLE_KEY)
