"""
Failure types raised by the patrol controller.

Everything except MissionCancelled is a fatal setup error: the CLI logs it
and exits with status 1.
"""


class PatrolError(Exception):
    pass


class ConnectionFailed(PatrolError):
    pass


class DiscoveryTimeout(PatrolError):
    pass


class PreflightAbort(PatrolError):
    pass


class CommandRejected(PatrolError):
    pass


class ArmRejected(CommandRejected):
    pass


class TakeoffRejected(CommandRejected):
    pass


class OffboardUnavailable(PatrolError):
    pass


class MissionCancelled(PatrolError):
    """Raised at a suspension point once the abort signal is set."""

    def __init__(self, reason: str = ""):
        super().__init__(reason or "mission cancelled")
        self.reason = reason
