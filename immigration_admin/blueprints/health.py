"""
Health Monitoring Blueprint

Endpoints:
- /health: Liveness, answers 200 while the process can serve requests
- /health/ready: Readiness, pings the document store (200 or 503)
- /metrics: Prometheus exposition of the validation, linked fields and
  document store metrics
"""

from datetime import datetime, timezone

import structlog
from flask import Blueprint, current_app, jsonify

from immigration_admin.monitoring.metrics import metrics_response

logger = structlog.get_logger("blueprints.health")

health_bp = Blueprint('health', __name__)

DOCUMENT_STORE_EXTENSION = 'document_store'


class HealthStatus:
    HEALTHY = 'healthy'
    UNHEALTHY = 'unhealthy'


def _application_info():
    return {
        'name': current_app.config.get('APP_NAME'),
        'version': current_app.config.get('APP_VERSION'),
    }


@health_bp.route('/health', methods=['GET'])
def basic_health():
    """Liveness probe."""
    return jsonify({
        'status': HealthStatus.HEALTHY,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'application': _application_info(),
    }), 200


@health_bp.route('/health/ready', methods=['GET'])
def readiness_probe():
    """
    Readiness probe checking document store connectivity.

    Returns:
        HTTP 200 when the store answers a ping, HTTP 503 otherwise
    """
    store = current_app.extensions.get(DOCUMENT_STORE_EXTENSION)
    if store is None:
        dependency = {'status': HealthStatus.UNHEALTHY, 'error_type': 'NotConfigured'}
    else:
        dependency = store.health_check()

    status = dependency.get('status')
    if status != HealthStatus.HEALTHY:
        logger.warning("Readiness check failed", dependency_status=status)

    response = {
        'status': HealthStatus.HEALTHY if status == HealthStatus.HEALTHY else HealthStatus.UNHEALTHY,
        'timestamp': datetime.now(timezone.utc).isoformat(),
        'application': _application_info(),
        'dependencies': {'mongodb': dependency},
    }
    return jsonify(response), 200 if status == HealthStatus.HEALTHY else 503


@health_bp.route('/metrics', methods=['GET'])
def prometheus_metrics():
    return metrics_response()


__all__ = [
    'health_bp',
    'HealthStatus',
    'DOCUMENT_STORE_EXTENSION',
]
