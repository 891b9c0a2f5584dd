import os
import logging
import stripe
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./trvel.db")
SQLALCHEMY_DATABASE_URI = DATABASE_URL

LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

# Test mode swaps Stripe keys and replaces eSIM provisioning with mock data
TEST_MODE: bool = os.getenv("TEST_MODE", "false").lower() == "true"

# JWT Settings (admin sessions)
SECRET_KEY: str = os.getenv("SECRET_KEY", "a_very_secret_key_that_should_be_in_env_file_and_much_stronger")
ALGORITHM: str = "HS256"
ADMIN_SESSION_EXPIRE_HOURS: int = int(os.getenv("ADMIN_SESSION_EXPIRE_HOURS", 24))
ADMIN_SESSION_COOKIE: str = "admin_session"

# Admin credentials
ADMIN_USERNAME: str = os.getenv("ADMIN_USERNAME", "")
ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "")
ADMIN_API_KEY: str = os.getenv("ADMIN_API_KEY", "")

# Stripe API Keys
if TEST_MODE:
    STRIPE_SECRET_KEY: str = os.getenv("TEST_STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("TEST_STRIPE_WEBHOOK_SECRET", "")
else:
    STRIPE_SECRET_KEY: str = os.getenv("STRIPE_SECRET_KEY", "")
    STRIPE_WEBHOOK_SECRET: str = os.getenv("STRIPE_WEBHOOK_SECRET", "")

# eSIM Go
ESIMGO_API_BASE: str = os.getenv("ESIMGO_API_BASE", "https://api.esim-go.com/v2.5")
ESIMGO_API_KEY: str = os.getenv("ESIMGO_API_KEY", "")

# Transactional email (Resend)
RESEND_API_BASE: str = os.getenv("RESEND_API_BASE", "https://api.resend.com")
RESEND_API_KEY: str = os.getenv("RESEND_API_KEY", "")
EMAIL_FROM: str = os.getenv("EMAIL_FROM", "Jonathan from Trvel <noreply@e.trvel.co>")
EMAIL_LOGO_URL: str = os.getenv("EMAIL_LOGO_URL", "https://www.trvel.co/android-chrome-192x192.png")
SUPPORT_PHONE: str = os.getenv("SUPPORT_PHONE", "+61 3 4052 7555")

# Outbound HTTP calls have no retry, only a timeout
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", 30))

ORDER_NUMBER_PREFIX: str = os.getenv("ORDER_NUMBER_PREFIX", "TRV")
DEFAULT_LOCALE: str = os.getenv("DEFAULT_LOCALE", "en-au")
DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "AUD")

# Fallback origin for Checkout redirect URLs when the request carries none
SITE_URL: str = os.getenv("SITE_URL", "http://localhost:3000")

# Initialize Stripe API key
if STRIPE_SECRET_KEY:
    stripe.api_key = STRIPE_SECRET_KEY
else:
    # Avoid logging the key itself
    logger.warning("Stripe secret key is not configured. Checkout will not work.")
