"""Wizard exceptions.

Every error carries a stable, machine-readable ``code`` (e.g.
``aggregation.of.not.found``) that API callers map to user-facing messages.
"""

from __future__ import annotations


class WizardError(Exception):
    """Base exception for all wizard errors."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


class BadDataError(WizardError):
    """Client-correctable problem with the request or its claims."""


class EntityNotFoundError(WizardError):
    """Referenced participant or offering does not exist."""


class UpstreamError(WizardError):
    """An external collaborator (signer, host, remote document) failed."""


class LabelLevelMissingError(UpstreamError):
    """Signer returned no label-level credential for a criteria claim."""

    def __init__(self, message: str | None = None) -> None:
        super().__init__("label.level.not.created", message)
