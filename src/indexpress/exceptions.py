"""
IndexPress Exceptions
=====================

Only programming and configuration mistakes raise. Expected request
failures (not found, non-2xx, unreachable hosts) are returned as values,
see ``indexpress.models.RequestFailure``.
"""


class IndexPressError(Exception):
    """Base exception for all IndexPress errors."""
    pass


class ConfigurationError(IndexPressError):
    """
    Raised when client configuration is missing or malformed.

    Examples:
        - No hosts configured
        - Shield credential without a ``user:password`` separator
        - Non-numeric value for a numeric environment variable
    """
    pass


class RegistryError(IndexPressError):
    """
    Raised on invalid use of the indexable registry.

    Examples:
        - Registering a second indexable under an existing slug
        - Registering after ``initialize_all()`` has run
    """

    def __init__(self, message: str, slug: str = None):
        self.slug = slug
        super().__init__(message)
