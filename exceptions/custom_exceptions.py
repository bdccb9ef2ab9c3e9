"""
Custom Exception Classes for the SQY Ping backend

Provides a hierarchy of exceptions for consistent error responses.
All custom exceptions inherit from SQYPingException which carries a status code and details.

Rule violations (burned player, quota exceeded, ...) are NOT exceptions: the
validators return them as result objects. These classes cover request and I/O errors.
"""

import uuid
from datetime import datetime
from typing import Any


class SQYPingException(Exception):
    """Base exception for all application errors"""

    def __init__(self, message: str, status_code: int = 500, details: dict[Any, Any] | None = None):
        """
        Args:
            message: Human-readable error message
            status_code: HTTP status code for the error
            details: Additional context as a dictionary
        """
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


class ResourceNotFoundException(SQYPingException):
    """Raised when a requested resource doesn't exist"""

    def __init__(
        self, resource_type: str, resource_id: str = "", details: dict[Any, Any] | None = None
    ):
        """
        Args:
            resource_type: Type of resource (e.g., 'Team', 'Player', 'Composition')
            resource_id: ID of the missing resource
            details: Additional context

        Example:
            raise ResourceNotFoundException('Team', team_id, {'phase': 'aller'})
        """
        message = f"{resource_type} with resource ID '{resource_id}' not found"
        extra_details = {"resource_type": resource_type, "resource_id": resource_id}
        if details:
            extra_details.update(details)
        super().__init__(message, status_code=404, details=extra_details)


class ValidationException(SQYPingException):
    """Raised when request input validation fails"""

    def __init__(self, field: str, message: str, details: dict[Any, Any] | None = None):
        """
        Args:
            field: Name of the field that failed validation
            message: Description of the validation error
            details: Additional context

        Example:
            raise ValidationException('journee', 'Must be a positive integer', {'value': journee})
        """
        full_message = f"Validation error on field '{field}': {message}"
        extra_details = {"field": field}
        if details:
            extra_details.update(details)
        super().__init__(full_message, status_code=400, details=extra_details)


class ConcurrentModificationException(SQYPingException):
    """Raised when a document changed between the validation read and the commit write"""

    def __init__(self, resource_type: str, resource_id: str, details: dict[Any, Any] | None = None):
        message = (
            f"{resource_type} '{resource_id}' was modified concurrently, reload and retry"
        )
        extra_details = {"resource_type": resource_type, "resource_id": resource_id}
        if details:
            extra_details.update(details)
        super().__init__(message, status_code=409, details=extra_details)


class DatabaseOperationException(SQYPingException):
    """Raised when database operations fail"""

    def __init__(
        self,
        operation: str,
        message: str = "",
        collection: str = "",
        details: dict[Any, Any] | None = None,
    ):
        """
        Args:
            operation: Type of operation (e.g., 'bulk_write', 'update', 'find')
            message: Description of the database error
            collection: Name of the collection
            details: Additional context (e.g., query, error message)

        Example:
            raise DatabaseOperationException('bulk_write', collection='players', details={'error': str(e)})
        """
        self.operation = operation
        self.collection = collection
        self.correlation_id = str(uuid.uuid4())
        self.timestamp = datetime.utcnow().isoformat()

        error_message = message or f"Database operation '{operation}' failed"
        if collection and not message:
            error_message += f" on collection '{collection}'"

        super().__init__(error_message, status_code=500, details=details)


class ExternalServiceException(SQYPingException):
    """Raised when external service calls fail"""

    def __init__(self, service_name: str, message: str, details: dict[Any, Any] | None = None):
        """
        Args:
            service_name: Name of the external service
            message: Description of the error
            details: Additional context (e.g., status code, response)

        Example:
            raise ExternalServiceException('FFTT_API', 'Failed to fetch teams', {'status_code': 500})
        """
        full_message = f"External service '{service_name}' error: {message}"
        extra_details = {"service_name": service_name}
        if details:
            extra_details.update(details)
        super().__init__(full_message, status_code=502, details=extra_details)
