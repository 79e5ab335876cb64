# plainterm/errors.py
#
# Failure conditions raised by the shell session. None of them is fatal to the
# host application: each one is reported and then absorbed by whoever catches it.


class PlainTermError(Exception):
    """Base class for all session errors."""
    pass


class LaunchError(PlainTermError):
    """The child shell could not be spawned."""
    pass


class WriteError(PlainTermError):
    """Writing to the child's input pipe failed. The session is now degraded."""
    pass


class ReadDecodeError(PlainTermError):
    """An output chunk could not be decoded as text and was dropped."""

    def __init__(self, message: str, chunk: bytes = b""):
        super().__init__(message)
        self.chunk = chunk


class SessionStateError(PlainTermError):
    """An operation was attempted in a session state that does not allow it."""
    pass
