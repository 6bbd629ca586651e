"""
Base service layer patterns for business logic encapsulation.

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Error Handling:
    Services raise core.exceptions subclasses for expected failures
    (business rules) and let the DRF exception handler turn them into
    responses. Unexpected failures propagate unchanged.

Usage:
    from core.services import BaseService

    class AccountService(BaseService):
        def close(self, account_id: int) -> None:
            ...
            self.get_logger().info(
                "Account closed",
                extra={"account_id": account_id},
            )

Related:
    - core.exceptions: Exception hierarchy raised by services
    - core.exception_handler: HTTP mapping of that hierarchy
"""

from __future__ import annotations

import logging


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service

    Design Notes:
        - Services hold no per-request state
        - Collaborators (stores, writers) are passed in explicitly
        - Raise core.exceptions subclasses for business failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.

        Returns:
            Logger instance for this service

        Example:
            class PaymentService(BaseService):
                @classmethod
                def process_payment(cls, amount):
                    cls.get_logger().info(f"Processing payment: {amount}")
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")
