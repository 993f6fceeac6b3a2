"""Configuration module for Flask application."""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


class Config:
    """Base configuration class."""

    # Flask
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    DEBUG = os.getenv('FLASK_DEBUG', '1') == '1'
    ENV = os.getenv('FLASK_ENV', 'development')
    TESTING = False

    # Session Configuration (Production-safe defaults)
    SESSION_COOKIE_SECURE = os.getenv('SESSION_COOKIE_SECURE', 'false').lower() == 'true'
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = os.getenv('SESSION_COOKIE_SAMESITE', 'Lax')
    PERMANENT_SESSION_LIFETIME = int(os.getenv('SESSION_LIFETIME_SECONDS', '86400'))  # 24 hours

    # Logging
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO').upper()

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'marketplace')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'marketplace')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'marketplace')

        DATABASE_URL = (
            f"postgresql+psycopg://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Checkout transaction (bounded retry on serialization failures / deadlocks)
    CHECKOUT_MAX_ATTEMPTS = int(os.getenv('CHECKOUT_MAX_ATTEMPTS', '3'))
    CHECKOUT_RETRY_BACKOFF = float(os.getenv('CHECKOUT_RETRY_BACKOFF', '0.05'))  # seconds
    DEFAULT_SHIPMENT_CHARGES = os.getenv('DEFAULT_SHIPMENT_CHARGES', '0')
    TOTAL_MISMATCH_TOLERANCE = os.getenv('TOTAL_MISMATCH_TOLERANCE', '0.01')

    # Partner referral codes
    REFERRAL_CODE_LENGTH = int(os.getenv('REFERRAL_CODE_LENGTH', '8'))
    REFERRAL_CODE_MAX_ATTEMPTS = int(os.getenv('REFERRAL_CODE_MAX_ATTEMPTS', '10'))

    # Catalog maintenance
    DEFAULT_RESTOCK_INVENTORY = int(os.getenv('DEFAULT_RESTOCK_INVENTORY', '100'))

    # Business Information (for invoices)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'Marketplace')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')


class TestConfig(Config):
    """Configuration used by the test suite (in-memory SQLite)."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = os.getenv('TEST_DATABASE_URL', 'sqlite://')
    SQLALCHEMY_ECHO = False
    WTF_CSRF_ENABLED = False
    CHECKOUT_RETRY_BACKOFF = 0.0
