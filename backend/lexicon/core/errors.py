"""
Domain exceptions and the global FastAPI error handler.
"""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class LexiconError(Exception):
    """Base class for errors raised by the lexicon backend."""


class DefinitionLookupError(LexiconError):
    """A dictionary API call failed for a reason other than 'not found'."""


class UnknownProviderError(LexiconError):
    pass


class SlugConflictError(LexiconError):
    def __init__(self, slug: str):
        super().__init__(f"An entry with slug '{slug}' already exists")
        self.slug = slug


class SlugGenerationError(LexiconError):
    def __init__(self, text: str | None = None):
        super().__init__("Slug could not be generated; provide one")
        self.text = text


class AuthorNotFoundError(LexiconError):
    def __init__(self, author_id: int):
        super().__init__("Author not found")
        self.author_id = author_id


class AuthorExistsError(LexiconError):
    def __init__(self, slug: str):
        super().__init__("An author with this name already exists")
        self.slug = slug


class AuthError(LexiconError):
    message = "Authentication failed"

    def __init__(self, message: str | None = None):
        super().__init__(message or self.message)


class TokenMissing(AuthError):
    message = "Authorization token is required"


class TokenExpired(AuthError):
    message = "Authorization token has expired"


class TokenInvalid(AuthError):
    message = "Authorization token is invalid"


def register_error_handlers(app: FastAPI) -> None:
    """Log unhandled exceptions and hide their details from clients."""

    @app.exception_handler(Exception)
    async def handle_exception(request: Request, exc: Exception):
        logger.error(
            "Unhandled exception on %s %s: %s",
            request.method,
            request.url.path,
            exc,
            exc_info=exc,
        )
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})
