"""
Configuration management for the indicator access service.
"""
import os
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str = 'true') -> bool:
    return os.getenv(name, default).strip().lower() in ('1', 'true', 'yes', 'on')


class BaseConfig:
    """Base configuration."""
    SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Whop (commerce platform)
    WHOP_API_KEY = os.getenv('WHOP_API_KEY', '')
    WHOP_APP_ID = os.getenv('WHOP_APP_ID', os.getenv('NEXT_PUBLIC_WHOP_APP_ID', ''))
    WHOP_API_BASE = os.getenv('WHOP_API_BASE', 'https://api.whop.com/api/v1')

    # When set, user tokens are signature-checked instead of only decoded
    WHOP_TOKEN_SECRET = os.getenv('WHOP_TOKEN_SECRET', '')

    # TradingView (indicator host)
    TRADINGVIEW_BASE_URL = os.getenv('TRADINGVIEW_BASE_URL', 'https://www.tradingview.com')

    # Seconds, applied to every outbound HTTP call
    HTTP_TIMEOUT = float(os.getenv('HTTP_TIMEOUT', '30'))

    # Seller endpoints require owner/admin role on the company
    ENFORCE_SELLER_ROLE = _env_flag('ENFORCE_SELLER_ROLE', 'true')

    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')


class DevelopmentConfig(BaseConfig):
    """Development configuration."""
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv(
        'DATABASE_URL',
        'sqlite:///tvaccess_dev.db'  # SQLite fallback for local dev
    )


class ProductionConfig(BaseConfig):
    """Production configuration."""
    DEBUG = False

    _db_url = os.getenv('DATABASE_URL', '')
    if _db_url.startswith('postgres://'):
        # SQLAlchemy requires postgresql:// not postgres://
        _db_url = _db_url.replace('postgres://', 'postgresql://', 1)

    SQLALCHEMY_DATABASE_URI = _db_url

    SQLALCHEMY_ENGINE_OPTIONS = {
        'pool_size': 5,
        'pool_recycle': 300,
        'pool_pre_ping': True,  # Verify connections before using
    }

    _secret_key = os.getenv('SECRET_KEY', '')

    @classmethod
    def validate_secret_key(cls) -> str:
        """
        Validate SECRET_KEY in production environment.

        Raises:
            RuntimeError: If SECRET_KEY is missing or too short
        """
        if not cls._secret_key:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY environment variable is not set!\n"
                "Generate one with: python -c \"import secrets; print(secrets.token_hex(32))\""
            )

        if len(cls._secret_key) < 32:
            raise RuntimeError(
                "CRITICAL: SECRET_KEY is too short (minimum 32 characters required)!"
            )

        return cls._secret_key

    SECRET_KEY = _secret_key


class TestingConfig(BaseConfig):
    """Testing configuration."""
    TESTING = True
    SQLALCHEMY_DATABASE_URI = 'sqlite:///:memory:'
    WHOP_API_KEY = 'test-api-key'
    WHOP_APP_ID = 'app_test'
    WHOP_TOKEN_SECRET = ''
    TRADINGVIEW_BASE_URL = 'https://tv.test'
    HTTP_TIMEOUT = 5.0
    ENFORCE_SELLER_ROLE = True


config_map = {
    'development': DevelopmentConfig,
    'production': ProductionConfig,
    'testing': TestingConfig
}


def get_config(config_name: str = 'development'):
    """Get configuration class by name."""
    return config_map.get(config_name, DevelopmentConfig)


def validate_config(config_name: str = 'development') -> None:
    """
    Validate configuration before app startup.

    Raises:
        RuntimeError: If validation fails in production
    """
    if config_name == 'production':
        ProductionConfig.validate_secret_key()


def verify_whop_config(config) -> dict:
    """
    Check that the Whop credentials are present.

    Args:
        config: Flask config mapping

    Returns:
        Dict with 'valid' flag and list of 'missing' keys
    """
    missing = []

    if not config.get('WHOP_API_KEY'):
        missing.append('WHOP_API_KEY')

    if not config.get('WHOP_APP_ID'):
        missing.append('WHOP_APP_ID')

    return {
        'valid': len(missing) == 0,
        'missing': missing,
    }
