"""Exceptions raised by the readiness pipeline.

Every error here is retryable at the cycle level: the controller folds it into
a condition and the next sync pass tries again.
"""


class WellKnownError(Exception):
    """Base class for readiness pipeline errors."""


class ConfigurationError(WellKnownError):
    """A watched object lacks the configuration the controller relies on."""


class RetrievalError(WellKnownError):
    """Looking up a required object failed for a reason other than absence."""


class SecretRetrievalError(RetrievalError):
    """Looking up the router certificates secret failed."""


class NotFoundError(WellKnownError):
    """A required object or port could not be found."""


class NotReadyError(WellKnownError):
    """The backing state exists but is not ready yet."""


class NotAdmittedError(NotReadyError):
    """The route has not been admitted by a router at the expected host."""


class InvalidSpecError(WellKnownError):
    """The observed route diverges from the desired spec and was deleted."""


class MissingSecretError(WellKnownError):
    """The router certificates secret is absent or empty."""


class EndpointCheckError(WellKnownError):
    """Checking the discovery endpoint failed at the transport level."""
