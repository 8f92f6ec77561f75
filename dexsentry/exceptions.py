"""
Domain exceptions for the decision core.

Collaborator adapters raise these; core components catch them at the point
of call and turn them into result values. Only ConfigurationError is meant
to reach the process entry point.
"""


class DecisionCoreError(Exception):
    """Base error for the decision core."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ConfigurationError(DecisionCoreError):
    """Missing or invalid configuration detected at startup."""


class InvalidInputError(DecisionCoreError):
    """Missing or malformed token / address identifier."""


class DataSourceError(DecisionCoreError):
    """External data source (RPC, risk API, price API) failed."""

    def __init__(self, message: str, source: str = "unknown"):
        self.source = source
        super().__init__(message)
