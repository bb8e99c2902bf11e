"""
Flask Application Factory

``create_app`` builds the immigration admin validation service:

1. Load the environment configuration class and apply overrides
2. Configure structlog-based structured logging
3. Attach the document store and the linked fields cache
4. Register business and database error handlers
5. Register request logging with correlation IDs
6. Register the ``api`` and ``health`` blueprints

Examples:
    app = create_app('development')
    app = create_app('testing', document_store=mock_store)
    app = create_app('production', MONGODB_URI='mongodb://db:27017')
"""

from typing import Optional

import structlog
from flask import Flask

from immigration_admin.blueprints.api import LINKED_FIELDS_CACHE_EXTENSION, api_bp
from immigration_admin.blueprints.health import DOCUMENT_STORE_EXTENSION, health_bp
from immigration_admin.business.exceptions import create_flask_error_handlers
from immigration_admin.business.field_links import LinkedFieldsCache, LinkedFieldsMapBuilder
from immigration_admin.config.settings import get_config
from immigration_admin.data.exceptions import register_database_error_handlers
from immigration_admin.data.mongodb import create_mongodb_manager
from immigration_admin.monitoring.logging import init_request_logging, setup_structured_logging

logger = structlog.get_logger("immigration_admin.app")


def create_app(config_name: Optional[str] = None, document_store=None, **config_overrides) -> Flask:
    """
    Create and configure the Flask application.

    Args:
        config_name: development, testing or production (defaults to FLASK_ENV)
        document_store: Store used for linked fields lookups; a
            ``MongoDBManager`` built from configuration when omitted
        **config_overrides: Configuration values overriding the environment class

    Returns:
        Configured Flask application

    Raises:
        ConfigurationError: If the environment is unknown or production
            settings are incomplete
    """
    config_class = get_config(config_name)

    app = Flask('immigration_admin')
    app.config.from_object(config_class)
    app.config.update(config_overrides)

    setup_structured_logging(app.config['LOG_LEVEL'], app.config['LOG_FORMAT'])
    config_class.init_app(app)

    if document_store is None:
        document_store = create_mongodb_manager(
            uri=app.config['MONGODB_URI'],
            database_name=app.config['MONGODB_DATABASE'],
            server_selection_timeout_ms=app.config['MONGODB_SERVER_SELECTION_TIMEOUT_MS']
        )
    app.extensions[DOCUMENT_STORE_EXTENSION] = document_store
    app.extensions[LINKED_FIELDS_CACHE_EXTENSION] = LinkedFieldsCache(
        LinkedFieldsMapBuilder(document_store),
        max_entries=app.config['LINKED_FIELDS_CACHE_MAX_ENTRIES'],
        ttl_seconds=app.config['LINKED_FIELDS_CACHE_TTL_SECONDS']
    )

    create_flask_error_handlers(app)
    register_database_error_handlers(app)
    init_request_logging(app)

    app.register_blueprint(api_bp)
    app.register_blueprint(health_bp)

    logger.info("Flask application created",
                config_class=config_class.__name__,
                blueprints=sorted(app.blueprints),
                default_locale=app.config['DEFAULT_LOCALE'])
    return app


__all__ = ['create_app']
