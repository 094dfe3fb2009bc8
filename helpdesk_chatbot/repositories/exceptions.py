"""
Repository Layer Exceptions
"""


class StaleSessionError(Exception):
    """Raised when a session was saved by someone else since it was loaded."""
    pass
