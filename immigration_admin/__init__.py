"""
Immigration Admin Validation Service

Validation layer and field-linking indicator for the immigration
administrative dashboard, served as a Flask application.

Package Structure:
    business: Validators, typed models, localization and field linking
    data: MongoDB access with retry and circuit breaker protection
    monitoring: structlog configuration and Prometheus metrics
    blueprints: HTTP endpoints
    config: Environment configuration classes
"""

__version__ = '1.0.0'
