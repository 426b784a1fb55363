"""
Custom exceptions for Shopkeeper.

Every error raised by the engine, the data layer or the schema registry
derives from ``ShopkeeperError`` so callers can catch a single base class.
Access control itself never raises: a denied operation is a ``Deny``
decision, and only the data layer turns it into ``AccessDeniedError``.
"""

from typing import Any, Dict, List, Optional


class ShopkeeperError(RuntimeError):
    """
    Base exception for Shopkeeper errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (list_name,
                 operation, subject_id, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class InitializationError(ShopkeeperError):
    """
    Raised when the engine cannot connect to MongoDB or finish start-up.

    Attributes:
        mongo_uri: MongoDB connection URI (if available)
        db_name: Database name (if available)
    """

    def __init__(
        self,
        message: str,
        mongo_uri: Optional[str] = None,
        db_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if mongo_uri:
            context["mongo_uri"] = mongo_uri
        if db_name:
            context["db_name"] = db_name
        super().__init__(message, context=context)
        self.mongo_uri = mongo_uri
        self.db_name = db_name


class ConfigurationError(ShopkeeperError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class ListDefinitionError(ShopkeeperError):
    """
    Raised when a list declaration is rejected at registration time.

    This covers malformed manifests, unknown field types, unknown operations
    in an access table and access slots that hold something other than a
    Decision or a callable returning one.

    Attributes:
        list_name: Name of the offending list (if available)
        error_paths: JSON paths of manifest validation errors (if available)
    """

    def __init__(
        self,
        message: str,
        list_name: Optional[str] = None,
        error_paths: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if list_name:
            context["list_name"] = list_name
        if error_paths:
            context["error_paths"] = error_paths
        super().__init__(message, context=context)
        self.list_name = list_name
        self.error_paths = error_paths


class AccessDeniedError(ShopkeeperError):
    """
    Raised by the data layer when a ``Deny`` decision rejects an operation.

    Attributes:
        list_name: List the operation targeted
        operation: Operation that was denied (create/read/update/delete)
        subject_id: Identifier of the subject, or None for anonymous requests
    """

    def __init__(
        self,
        list_name: str,
        operation: str,
        subject_id: Optional[str] = None,
        message: str = "You do not have access to this resource",
    ) -> None:
        super().__init__(
            message,
            context={
                "list_name": list_name,
                "operation": operation,
                "subject_id": subject_id or "anonymous",
            },
        )
        self.list_name = list_name
        self.operation = operation
        self.subject_id = subject_id


class DuplicateValueError(ShopkeeperError):
    """Raised when a write violates a unique field (e.g. ``User.email``)."""


class AuthenticationError(ShopkeeperError):
    """Raised when a password sign-in is attempted with unusable credentials."""


class InvalidReferenceError(ShopkeeperError):
    """
    Raised when a Relationship field names records that do not exist.

    Attributes:
        list_name: List being written
        field_name: Relationship field holding the dangling ids
        missing_ids: Ids with no record in the target list
    """

    def __init__(self, list_name: str, field_name: str, missing_ids: List[str]) -> None:
        super().__init__(
            f"{list_name}.{field_name} references unknown record(s): {', '.join(missing_ids)}",
            context={
                "list_name": list_name,
                "field_name": field_name,
                "missing_ids": missing_ids,
            },
        )
        self.list_name = list_name
        self.field_name = field_name
        self.missing_ids = missing_ids
