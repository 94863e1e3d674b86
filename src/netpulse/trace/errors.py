"""
Traceroute exceptions.
"""


class TracerouteError(Exception):
    """Base exception for traceroute errors."""

    code = "TRACEROUTE_ERROR"

    def __init__(self, message: str, code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code

    @property
    def message(self) -> str:
        return str(self)


class ValidationError(TracerouteError):
    """Target rejected before a run was created."""

    code = "TRACEROUTE_INIT_ERROR"


class RunRejectedError(TracerouteError):
    """A run is already active on the requested channel."""

    code = "TRACEROUTE_BUSY"


class ResourceError(TracerouteError):
    """The probe executor could not spawn or run its probe."""

    code = "TRACEROUTE_ERROR"
