# Exceptions package
from .custom_exceptions import (
    ConcurrentModificationException,
    DatabaseOperationException,
    ExternalServiceException,
    ResourceNotFoundException,
    SQYPingException,
    ValidationException,
)

__all__ = [
    'SQYPingException',
    'ResourceNotFoundException',
    'ValidationException',
    'ConcurrentModificationException',
    'DatabaseOperationException',
    'ExternalServiceException'
]
