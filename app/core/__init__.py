"""
Core Application - Infrastructure & Base Classes

This app contains infrastructure code shared by domain apps:

- Generic, reusable base classes (no domain-specific logic)
- The application exception hierarchy and its HTTP mapping
- Infrastructure endpoints (health check)

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Services (import from core.services):
    - BaseService: Base class for service layer

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Business-level input rejections
    - NotFoundError: Resource not found
    - ConflictError: State conflicts (insufficient funds, duplicates)
    - InfrastructureError: Database or filesystem failures

Exception handler (core.exception_handler):
    - exception_handler: DRF EXCEPTION_HANDLER mapping the categories above

Usage:
    from core.models import BaseModel
    from core.services import BaseService
    from core.exceptions import ConflictError, NotFoundError

Note:
    - Business logic should NOT go here. Extend core classes in your domain apps.
    - Django models are NOT imported here to avoid AppRegistryNotReady
      errors. Import them directly from their modules.
"""

# Services (no Django model dependencies)
from .services import BaseService

# Exceptions (no Django dependencies)
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    InfrastructureError,
    NotFoundError,
    ValidationError,
)

__all__ = [
    # Services
    "BaseService",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "ConflictError",
    "InfrastructureError",
]
