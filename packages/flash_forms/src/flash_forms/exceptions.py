from fastapi import status
from starlette.exceptions import HTTPException


class FormsError(Exception):
    """Base class for every error raised by Flash Forms."""


class UnknownFormError(FormsError):
    """Raised when a form name is not configured or a form was not created."""


class ConfigurationError(FormsError):
    """Raised when the forms configuration cannot be loaded or validated."""


class FormOptionError(FormsError):
    """Raised when a field definition uses an unknown type or bad options."""


class FileUploadError(FormsError):
    """Raised when an uploaded file cannot be stored."""


class RedirectRequired(HTTPException):
    """
    Signal that a successful submission should be followed by a redirect.

    Template functions cannot return responses, so the page view picks the
    target up from ``request.state`` and issues the redirect itself.
    """

    def __init__(self, url: str) -> None:
        super().__init__(
            status_code=status.HTTP_303_SEE_OTHER,
            detail=f"Redirect to {url}",
            headers={"Location": url},
        )
        self.url = url
