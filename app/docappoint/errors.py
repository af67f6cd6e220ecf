from __future__ import annotations

DEFAULT_ERROR_MESSAGE = "Oh No, Something Went Wrong!"


class AppError(Exception):
    """
    Error carrying an HTTP status for the error page.
    Raise it from a view; the app-level handler renders `error.html`.
    """

    def __init__(self, message: str = "", status_code: int = 500) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class PageNotFound(AppError):
    def __init__(self, message: str = "Page Not Found") -> None:
        super().__init__(message, 404)


class OAuthError(AppError):
    def __init__(self, message: str) -> None:
        super().__init__(message, 502)


def error_context(err: BaseException) -> tuple[int, str]:
    """Status code and display message for any exception reaching the error page."""
    from werkzeug.exceptions import HTTPException

    if isinstance(err, AppError):
        status = err.status_code or 500
        message = err.message
    elif isinstance(err, HTTPException):
        status = err.code or 500
        message = "Page Not Found" if status == 404 else (err.description or "")
    else:
        status = 500
        message = ""
    if not message:
        message = DEFAULT_ERROR_MESSAGE
    return status, message
