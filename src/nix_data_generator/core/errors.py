"""
Error taxonomy for a generator run.

Every failure is terminal for the run. The CLI reports it and exits non-zero;
an external scheduler is expected to re-invoke the generator.
"""

from typing import Any


class GeneratorError(Exception):
    """Base class for all run-aborting failures."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = {k: v for k, v in context.items() if v is not None}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{k}={v}" for k, v in self.context.items())
        return f"{self.message} ({details})"


class ResolutionFailed(GeneratorError):
    """Neither the requested channel nor the fallback channel could be probed."""


class FetchFailed(GeneratorError):
    """The package manifest could not be downloaded."""


class DecodeFailed(GeneratorError):
    """The manifest did not match any recognized shape."""


class LoadFailed(GeneratorError):
    """Creating or populating a database failed."""


class IoFailed(GeneratorError):
    """A marker file or source directory operation failed."""
