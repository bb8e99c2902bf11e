"""
Data Access Package

MongoDB access through PyMongo, wrapped with tenacity retries and a
pybreaker circuit breaker. Callers only see ``DatabaseException`` subclasses.
"""

from .exceptions import (
    CircuitBreakerException,
    ConnectionException,
    DatabaseException,
    QueryException,
    TimeoutException
)
from .mongodb import MongoDBManager, create_mongodb_manager

__all__ = [
    'CircuitBreakerException',
    'ConnectionException',
    'DatabaseException',
    'QueryException',
    'TimeoutException',
    'MongoDBManager',
    'create_mongodb_manager',
]
