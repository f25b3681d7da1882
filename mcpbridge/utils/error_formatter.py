# -*- coding: utf-8 -*-
"""MCP Bridge centralized formatting for Pydantic validation errors, SQL exceptions and log messages.
Copyright 2025
SPDX-License-Identifier: Apache-2.0
Authors: Mihai Criveti
"""

# Standard
import logging
import traceback
from typing import Any, Dict

# Third-Party
from pydantic import ValidationError
from sqlalchemy.exc import DatabaseError, IntegrityError

logger = logging.getLogger(__name__)


def format_error_message(error: BaseException, with_traceback: bool = False) -> str:
    """Render an exception for logs and JSON-RPC error data.

    Args:
        error: Exception to render
        with_traceback: Append the formatted traceback when one is attached

    Returns:
        str: ``<ExceptionName>: <message>``, optionally followed by the traceback

    Examples:
        >>> format_error_message(ValueError("bad value"))
        'ValueError: bad value'
        >>> try:
        ...     raise KeyError("k")
        ... except KeyError as e:
        ...     short, full = format_error_message(e), format_error_message(e, with_traceback=True)
        >>> short
        "KeyError: 'k'"
        >>> "Traceback" in short, "Traceback" in full
        (False, True)
    """
    message = f"{type(error).__name__}: {error}"
    if with_traceback and error.__traceback__ is not None:
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        message = f"{message}\n{stack}"
    return message


class ErrorFormatter:
    """
    Transform technical errors into user-friendly messages.
    """

    @staticmethod
    def format_validation_error(error: ValidationError) -> Dict[str, Any]:
        """
        Convert Pydantic errors to user-friendly format.

        Args:
            error (ValidationError): The Pydantic validation error.

        Returns:
            Dict[str, Any]: A dictionary with formatted error details.

        Examples:
            >>> from pydantic import BaseModel
            >>> class M(BaseModel):
            ...     base_url: str
            >>> try:
            ...     M()
            ... except ValidationError as e:
            ...     ErrorFormatter.format_validation_error(e)["details"]
            [{'field': 'base_url', 'message': 'Invalid base_url'}]
        """
        errors = []
        for err in error.errors():
            loc = err.get("loc") or ("field",)
            field = str(loc[-1])
            msg = err.get("msg", "Invalid value")
            errors.append({"field": field, "message": ErrorFormatter._get_user_message(field, msg)})

        # Log the full error for debugging
        logger.debug(f"Validation error: {error}")

        return {"message": "Validation failed", "details": errors, "success": False}

    @staticmethod
    def _get_user_message(field: str, technical_msg: str) -> str:
        """
        Map technical validation messages to user-friendly ones.

        Args:
            field (str): The field name.
            technical_msg (str): The technical validation message.

        Returns:
            str: User-friendly error message.

        Examples:
            >>> ErrorFormatter._get_user_message("name", "Value error, Tool name must match ^[a-z][a-z0-9_]{2,}$")
            'Name must start with a lower-case letter and contain at least 3 lower-case letters, digits or underscores'
            >>> ErrorFormatter._get_user_message("slug", "something else")
            'Invalid slug'
        """
        mappings = {
            "Tool name must match": f"{field.title()} must start with a lower-case letter and contain at least 3 lower-case letters, digits or underscores",
            "Base URL must start with": f"{field.title()} must be a valid HTTP URL",
            "Unsupported HTTP method": f"{field.title()} must be one of GET, POST, PUT, PATCH, DELETE",
            "Slug must contain": f"{field.title()} must contain only lower-case letters, digits and hyphens",
        }
        for pattern, friendly_msg in mappings.items():
            if pattern in technical_msg:
                return friendly_msg

        # Default fallback
        return f"Invalid {field}"

    @staticmethod
    def format_database_error(error: DatabaseError) -> Dict[str, Any]:
        """
        Convert database errors to user-friendly format.

        Args:
            error (DatabaseError): The database error.

        Returns:
            Dict[str, Any]: A dictionary with formatted error details.

        Examples:
            >>> err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: bridges.slug"))
            >>> ErrorFormatter.format_database_error(err)
            {'message': 'A bridge with this slug already exists', 'success': False}
        """
        error_str = str(error.orig) if hasattr(error, "orig") else str(error)

        # Log full error
        logger.error(f"Database error: {error}")

        if isinstance(error, IntegrityError):
            if "UNIQUE constraint failed" in error_str or "duplicate key" in error_str:
                if "bridges.slug" in error_str or "bridges_slug" in error_str:
                    return {"message": "A bridge with this slug already exists", "success": False}
                if "access_tokens.token" in error_str or "access_tokens_token" in error_str:
                    return {"message": "An access token with this value already exists", "success": False}
            elif "FOREIGN KEY constraint failed" in error_str:
                return {"message": "Referenced item not found", "success": False}
            elif "NOT NULL constraint failed" in error_str:
                return {"message": "Required field is missing", "success": False}

        # Generic database error
        return {"message": "Unable to complete the operation. Please try again.", "success": False}
