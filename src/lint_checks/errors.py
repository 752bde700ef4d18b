"""Exceptions raised by lint-checks. HTTP failures surface as requests.HTTPError."""


class LintChecksError(Exception):
    """Base class for all errors raised by lint-checks itself."""


class ConfigurationError(LintChecksError):
    """Invalid or missing inputs, raised before any network call is made."""


class CollectionError(LintChecksError):
    """A file in scope could not be read, configured or analyzed."""


class CheckRunStateError(LintChecksError):
    """An illegal transition of the check run lifecycle was attempted."""
