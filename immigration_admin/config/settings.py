"""
Flask Application Configuration Settings

Environment-specific configuration classes for the immigration admin
validation service. Values come from the process environment, with a
``.env`` file loaded through python-dotenv for local development.

Environment Variables:
    FLASK_ENV: development | testing | production (default: development)
    SECRET_KEY: Flask secret key
    MONGODB_URI: MongoDB connection string
    MONGODB_DATABASE: MongoDB database name
    LOG_LEVEL: Root log level (default: INFO)
    LOG_FORMAT: json | console (default: json)
    DEFAULT_LOCALE: en | pt, message catalog used when a request names none
    LINKED_FIELDS_CACHE_MAX_ENTRIES: Process maps held in memory (default: 1024)
    LINKED_FIELDS_CACHE_TTL_SECONDS: Lifetime of a cached process map (default: 300)
"""

import logging
import os
from typing import Dict, List, Optional, Type

from dotenv import load_dotenv
from flask import Flask

from immigration_admin.business.exceptions import ConfigurationError
from immigration_admin.business.localization import supported_locales
from immigration_admin.monitoring.logging import VALID_LOG_FORMATS

# Load environment variables from .env file
load_dotenv()

logger = logging.getLogger(__name__)


class BaseConfig:
    """
    Base configuration class providing common settings for all environments.
    """

    # Flask Core Configuration
    SECRET_KEY = os.getenv('SECRET_KEY', os.urandom(32).hex())
    DEBUG = False
    TESTING = False

    # Application Metadata
    APP_NAME = os.getenv('APP_NAME', 'Immigration Admin Validation Service')
    APP_VERSION = os.getenv('APP_VERSION', '1.0.0')

    FLASK_ENV = os.getenv('FLASK_ENV', 'development')

    # Request Parsing Configuration
    MAX_CONTENT_LENGTH = int(os.getenv('MAX_CONTENT_LENGTH', '1048576'))  # 1MB default

    # JSON Configuration
    JSON_SORT_KEYS = False

    # Document Store Configuration
    MONGODB_URI = os.getenv('MONGODB_URI', 'mongodb://localhost:27017')
    MONGODB_DATABASE = os.getenv('MONGODB_DATABASE', 'immigration_admin')
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = int(
        os.getenv('MONGODB_SERVER_SELECTION_TIMEOUT_MS', '5000')
    )

    # Logging Configuration
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')

    # Localization Configuration
    DEFAULT_LOCALE = os.getenv('DEFAULT_LOCALE', 'en')

    # Linked Fields Cache Configuration
    LINKED_FIELDS_CACHE_MAX_ENTRIES = int(os.getenv('LINKED_FIELDS_CACHE_MAX_ENTRIES', '1024'))
    LINKED_FIELDS_CACHE_TTL_SECONDS = int(os.getenv('LINKED_FIELDS_CACHE_TTL_SECONDS', '300'))

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with base configuration.

        Args:
            app: Flask application instance
        """
        app.json.sort_keys = cls.JSON_SORT_KEYS

        logger.info(
            "Base configuration initialized",
            extra={
                'config_class': cls.__name__,
                'app_name': cls.APP_NAME,
                'app_version': cls.APP_VERSION,
                'mongodb_database': cls.MONGODB_DATABASE,
                'default_locale': cls.DEFAULT_LOCALE
            }
        )


class DevelopmentConfig(BaseConfig):
    """Local development with console logs and debug mode."""

    DEBUG = True
    FLASK_ENV = 'development'
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'DEBUG')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'console')


class TestingConfig(BaseConfig):
    """
    Testing environment configuration.

    Uses a separate database name and a fixed secret key so that test runs
    never depend on the developer's environment.
    """

    TESTING = True
    DEBUG = True
    FLASK_ENV = 'testing'
    SECRET_KEY = 'testing-secret-key-not-for-production-use-0000'
    MONGODB_DATABASE = os.getenv('MONGODB_TEST_DATABASE', 'immigration_admin_test')
    MONGODB_SERVER_SELECTION_TIMEOUT_MS = 1000
    LOG_LEVEL = 'DEBUG'
    LOG_FORMAT = 'console'
    DEFAULT_LOCALE = 'en'


class ProductionConfig(BaseConfig):
    """Production configuration; requires SECRET_KEY and MONGODB_URI from the environment."""

    FLASK_ENV = 'production'
    SECRET_KEY = os.getenv('SECRET_KEY', '')
    MONGODB_URI = os.getenv('MONGODB_URI', '')
    LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')
    LOG_FORMAT = os.getenv('LOG_FORMAT', 'json')

    @classmethod
    def init_app(cls, app: Flask) -> None:
        """
        Initialize Flask application with production configuration.

        Raises:
            ConfigurationError: If mandatory settings are missing
        """
        issues = validate_configuration(cls)
        if issues:
            raise ConfigurationError(
                message=f"Configuration validation failed: {'; '.join(issues)}",
                error_code="INVALID_CONFIGURATION",
                context={'issues': issues}
            )
        super().init_app(app)


# Configuration mapping for environment-based selection
config_map: Dict[str, Type[BaseConfig]] = {
    'development': DevelopmentConfig,
    'testing': TestingConfig,
    'production': ProductionConfig,

    # Aliases for convenience
    'dev': DevelopmentConfig,
    'test': TestingConfig,
    'prod': ProductionConfig
}


def get_config(environment: Optional[str] = None) -> Type[BaseConfig]:
    """
    Get configuration class for the specified environment.

    Args:
        environment: Target environment name (defaults to FLASK_ENV)

    Returns:
        Configuration class for the specified environment

    Raises:
        ConfigurationError: If environment is not supported
    """
    if environment is None:
        environment = os.getenv('FLASK_ENV', 'development')

    environment = environment.lower()

    if environment not in config_map:
        raise ConfigurationError(
            message=(
                f"Unsupported environment '{environment}'. "
                f"Supported environments: {list(config_map.keys())}"
            ),
            error_code="UNSUPPORTED_ENVIRONMENT",
            config_key='FLASK_ENV'
        )

    config_class = config_map[environment]

    logger.info(
        "Configuration class selected",
        extra={
            'environment': environment,
            'config_class': config_class.__name__
        }
    )

    return config_class


def validate_configuration(config) -> List[str]:
    """
    Validate configuration settings and return list of issues.

    Args:
        config: Configuration class or instance to validate

    Returns:
        List of validation error messages (empty if valid)
    """
    issues = []

    if not config.SECRET_KEY:
        issues.append("SECRET_KEY is required")
    elif len(config.SECRET_KEY) < 32:
        issues.append("SECRET_KEY should be at least 32 characters long")

    if not config.MONGODB_URI:
        issues.append("MONGODB_URI is required")

    if not config.MONGODB_DATABASE:
        issues.append("MONGODB_DATABASE is required")

    if config.LOG_FORMAT not in VALID_LOG_FORMATS:
        issues.append(f"LOG_FORMAT must be one of {list(VALID_LOG_FORMATS)}")

    if config.DEFAULT_LOCALE not in supported_locales():
        issues.append(f"DEFAULT_LOCALE must be one of {supported_locales()}")

    if config.LINKED_FIELDS_CACHE_MAX_ENTRIES < 1:
        issues.append("LINKED_FIELDS_CACHE_MAX_ENTRIES must be at least 1")

    if config.LINKED_FIELDS_CACHE_TTL_SECONDS <= 0:
        issues.append("LINKED_FIELDS_CACHE_TTL_SECONDS must be positive")

    logger.info(
        "Configuration validation completed",
        extra={
            'issues_found': len(issues),
            'issues': issues
        }
    )

    return issues


__all__ = [
    'BaseConfig',
    'DevelopmentConfig',
    'TestingConfig',
    'ProductionConfig',
    'get_config',
    'validate_configuration',
    'config_map'
]
