"""Exceptions raised by the record file behaviors and storage back-ends."""


class ConfigurationError(Exception):
    """Raised when a behavior or back-end is set up incorrectly.

    Always raised before any storage I/O happens.
    """
    pass


class StorageError(Exception):
    """Raised when a storage back-end call fails (connectivity, permissions...)."""
    pass


class UnknownAttributeError(AttributeError):
    """Raised by a record when asked for an attribute it does not have."""

    def __init__(self, name: str):
        super().__init__(f"Unknown attribute '{name}'")
        self.name = name
