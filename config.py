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
    PERMANENT_SESSION_LIFETIME = 86400  # 24 hours

    # Database - Support multiple environment variable naming conventions
    # Priority: DATABASE_URL > DB_* > POSTGRES_*
    DATABASE_URL = os.getenv('DATABASE_URL')

    if not DATABASE_URL:
        # Try DB_* variables (Docker style)
        DB_HOST = os.getenv('DB_HOST') or os.getenv('POSTGRES_HOST', 'localhost')
        DB_PORT = os.getenv('DB_PORT') or os.getenv('POSTGRES_PORT', '5432')
        DB_NAME = os.getenv('DB_NAME') or os.getenv('POSTGRES_DB', 'quotedesk')
        DB_USER = os.getenv('DB_USER') or os.getenv('POSTGRES_USER', 'quotedesk')
        DB_PASSWORD = os.getenv('DB_PASSWORD') or os.getenv('POSTGRES_PASSWORD', 'quotedesk')

        DATABASE_URL = (
            f"postgresql://{DB_USER}:{DB_PASSWORD}"
            f"@{DB_HOST}:{DB_PORT}/{DB_NAME}"
        )

    # SQLAlchemy
    SQLALCHEMY_DATABASE_URI = DATABASE_URL
    SQLALCHEMY_ECHO = os.getenv('SQLALCHEMY_ECHO', 'false').lower() == 'true'

    # Business Information (printed on the quotation PDF)
    BUSINESS_NAME = os.getenv('BUSINESS_NAME', 'Motors Dealership')
    BUSINESS_ADDRESS = os.getenv('BUSINESS_ADDRESS', '')
    BUSINESS_PHONE = os.getenv('BUSINESS_PHONE', '')
    BUSINESS_EMAIL = os.getenv('BUSINESS_EMAIL', '')
    QUOTATION_VALID_DAYS = int(os.getenv('QUOTATION_VALID_DAYS', '30'))

    # Quotation engine
    QUOTATION_NUMBER_PREFIX = os.getenv('QUOTATION_NUMBER_PREFIX', 'QT')
    QUOTATION_NUMBER_MAX_RETRIES = int(os.getenv('QUOTATION_NUMBER_MAX_RETRIES', '5'))
    BASE_MODEL_HEADER_MATCH = os.getenv('BASE_MODEL_HEADER_MATCH', 'ex-showroom')
    CATALOG_FANOUT_WORKERS = int(os.getenv('CATALOG_FANOUT_WORKERS', '4'))
    # Render and upload the PDF right after the quotation is stored
    RENDER_DOCUMENT_ON_CREATE = os.getenv('RENDER_DOCUMENT_ON_CREATE', 'true').lower() == 'true'

    # Object Storage Configuration (MinIO/S3)
    # Compatible with AWS S3, DigitalOcean Spaces, MinIO
    S3_ENDPOINT = os.getenv('S3_ENDPOINT', 'http://minio:9000')
    S3_ACCESS_KEY = os.getenv('S3_ACCESS_KEY', 'minioadmin')
    S3_SECRET_KEY = os.getenv('S3_SECRET_KEY', 'minioadmin')
    S3_BUCKET = os.getenv('S3_BUCKET', 'quotations')
    S3_REGION = os.getenv('S3_REGION', 'us-east-1')
    S3_PUBLIC_URL = os.getenv('S3_PUBLIC_URL', 'http://localhost:9000')

    # WhatsApp gateway (HappySMS-compatible GET API)
    WHATSAPP_API_BASE_URL = os.getenv('WHATSAPP_API_BASE_URL', '')
    WHATSAPP_API_KEY = os.getenv('WHATSAPP_API_KEY', '')
    WHATSAPP_TIMEOUT = int(os.getenv('WHATSAPP_TIMEOUT', '30'))


class TestConfig(Config):
    """Configuration used by the test suite."""

    TESTING = True
    DEBUG = False
    ENV = 'testing'
    SQLALCHEMY_DATABASE_URI = os.getenv('DATABASE_URL', 'sqlite:///quotedesk-test.db')
    SQLALCHEMY_ECHO = False
    CATALOG_FANOUT_WORKERS = 2
    RENDER_DOCUMENT_ON_CREATE = False
