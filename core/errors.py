# core/errors.py

from typing import Any, Optional

from fastapi import HTTPException


# -----------------------------------------------------
# Error categories (the "error" field of every body)
# -----------------------------------------------------
UNAUTHORIZED = "unauthorized"
FORBIDDEN = "forbidden"
NOT_FOUND = "not_found"
VALIDATION_ERROR = "validation_error"
CONFLICT = "conflict"
GONE = "gone"
RATE_LIMITED = "rate_limited"
INTERNAL_ERROR = "internal_error"

_CATEGORY_BY_STATUS = {
    400: VALIDATION_ERROR,
    401: UNAUTHORIZED,
    403: FORBIDDEN,
    404: NOT_FOUND,
    409: CONFLICT,
    410: GONE,
    429: RATE_LIMITED,
    500: INTERNAL_ERROR,
}


def error_category(status_code: int) -> str:
    if status_code in _CATEGORY_BY_STATUS:
        return _CATEGORY_BY_STATUS[status_code]
    return INTERNAL_ERROR if status_code >= 500 else "http_error"


def api_error(
    status_code: int,
    code: str,
    message: str,
    headers: Optional[dict] = None,
    **extra: Any,
) -> HTTPException:
    """
    Build an HTTPException carrying the structured error body:

        {"error": "forbidden", "code": "WORKSPACE_ACCESS_DENIED",
         "message": "...", "status": 403, ...extra}

    Returns (doesn't raise) so callers write ``raise api_error(...)``.
    """
    detail = {
        "error": error_category(status_code),
        "code": code,
        "message": message,
        "status": status_code,
    }
    detail.update({k: v for k, v in extra.items() if v is not None})
    return HTTPException(status_code=status_code, detail=detail, headers=headers)


def unauthorized(message: str = "Authentication required") -> HTTPException:
    return api_error(401, "UNAUTHORIZED", message, headers={"WWW-Authenticate": "Bearer"})


def forbidden_access_denied(message: str = "Access denied to this workspace") -> HTTPException:
    return api_error(403, "WORKSPACE_ACCESS_DENIED", message)


def forbidden_admin_required(message: str = "Admin or owner role required") -> HTTPException:
    return api_error(403, "WORKSPACE_ADMIN_REQUIRED", message)


def not_found(message: str = "Resource not found", code: str = "NOT_FOUND") -> HTTPException:
    return api_error(404, code, message)


def validation_error(message: str, details: Optional[list] = None) -> HTTPException:
    return api_error(400, "VALIDATION_ERROR", message, details=details)


def conflict(message: str = "Resource already exists") -> HTTPException:
    return api_error(409, "CONFLICT", message)


# -----------------------------------------------------
# Supabase error helpers
# -----------------------------------------------------
def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: Supabase Auth / GoTrue / PostgREST APIError
    if hasattr(error, "message") and error.message:
        return str(error.message)

    # Case 2: Supabase errors with args (common)
    if getattr(error, "args", None):
        return str(error.args[0])

    # Case 3: Plain string fallback
    return str(error) or "Unknown Supabase error"


def handle_supabase_error(error: Exception, operation: str = "Database operation", status_code: int = 500) -> HTTPException:
    """
    Handle Supabase errors with consistent formatting.
    Returns HTTPException (doesn't raise) so caller can customize or re-raise.

    Args:
        error: The exception that occurred
        operation: Description of what operation failed (e.g., "Failed to create report")
        status_code: HTTP status code (default 500)

    Returns:
        HTTPException with the structured error body
    """
    from core.logging_config import logger

    error_detail = extract_supabase_error(error)
    logger.error(f"{operation}: {error_detail}")

    # Provide user-friendly messages for common errors
    error_lower = error_detail.lower()
    if "duplicate" in error_lower or "unique" in error_lower:
        return api_error(409, "CONFLICT", f"{operation}: Record already exists")
    elif "foreign key" in error_lower:
        return api_error(400, "VALIDATION_ERROR", f"{operation}: Invalid reference")
    elif "not found" in error_lower or "does not exist" in error_lower:
        return api_error(404, "NOT_FOUND", f"{operation}: Resource not found")
    else:
        return api_error(status_code, "INTERNAL_ERROR", f"{operation} failed")
