"""
Storage Exception Classes for PulseWatch

Raised by heartbeat store and monitor source adapters.
"""

from __future__ import annotations

import re
from typing import Any, Optional

from config.constants import ErrorCodes
from exceptions.base import PulseWatchException


class StorageError(PulseWatchException):
    """
    Storage Error

    A heartbeat append or read failed. The probe cycle that hit it
    does not record a heartbeat and the next cycle runs normally.
    """

    default_error_code = ErrorCodes.STORAGE_ERROR
    default_recoverable = True

    def __init__(
        self,
        message: str = "Storage operation failed",
        operation: Optional[str] = None,
        query: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        """
        Initialize storage error.

        Args:
            message: Error message
            operation: The store operation (append, query, ...)
            query: The SQL statement involved (sanitized)
            **kwargs: Additional arguments
        """
        super().__init__(message, **kwargs)

        if operation:
            self.details["operation"] = operation

        if query:
            self.details["query"] = self._sanitize_query(query)

    @staticmethod
    def _sanitize_query(query: str) -> str:
        """
        Sanitize SQL query by removing literal values.

        Args:
            query: The original SQL query

        Returns:
            Sanitized query string
        """
        query = re.sub(r"'[^']*'", "'***'", query)
        query = re.sub(r"= \d+", "= ***", query)

        if len(query) > 500:
            query = query[:500] + "..."

        return query


class StorageConnectionError(StorageError):
    """
    Storage Connection Error

    Raised when the database cannot be reached at startup.
    """

    default_error_code = ErrorCodes.DB_CONNECTION_ERROR
    default_recoverable = False

    def __init__(
        self,
        message: str = "Unable to connect to database",
        url: Optional[str] = None,
        **kwargs: Any
    ) -> None:
        super().__init__(message, operation="connect", **kwargs)

        if url:
            # Strip credentials
            self.details["url"] = re.sub(r"//[^@/]*@", "//***@", url)
