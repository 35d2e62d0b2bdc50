"""Error taxonomy shared by the repository, view-models and front ends."""


class ElorizeError(Exception):
    """Base class for application errors."""


class ValidationError(ElorizeError):
    """A required text field was empty after trimming."""


class PersistenceError(ElorizeError):
    """The local store failed to read or write."""
