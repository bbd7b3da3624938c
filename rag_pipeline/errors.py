"""
errors.py
=========
Exception taxonomy shared by the RAG pipeline, the case repository and the
HTTP layer.  Each class carries the HTTP status it maps to so the FastAPI
exception handler in backend.main can render it without a lookup table.
"""

from __future__ import annotations

from typing import Optional


class CasebookError(RuntimeError):
    """Base class for every error the service reports to a caller."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class InputError(CasebookError):
    """A required request field is missing or blank."""

    status_code = 400


class ConfigurationError(CasebookError):
    """A credential or setting needed for an external provider is missing."""

    status_code = 500


class NotFoundError(CasebookError):
    status_code = 404


class PermissionDeniedError(CasebookError):
    """The caller is not the author of the case it tries to modify."""

    status_code = 403


class UpstreamError(CasebookError):
    """
    An external collaborator (embedding provider, vector store, language
    model, database) failed or answered with an error payload.

    status_code is the upstream's own HTTP status when one is known.
    """

    status_code = 500


class MalformedResponseError(UpstreamError):
    """The upstream call succeeded but the payload lacks the expected field."""
