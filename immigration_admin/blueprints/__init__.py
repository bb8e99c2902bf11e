"""
Flask Blueprints

- API Blueprint (/api/v1/*): validation and field-linking endpoints
- Health Blueprint (/health, /health/ready, /metrics): probes and metrics
"""

from .api import api_bp
from .health import health_bp

__all__ = ['api_bp', 'health_bp']
