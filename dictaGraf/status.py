from enum import Enum


class SessionStatus(Enum):
    IDLE = "idle"           # Created, never started.
    LISTENING = "listening" # Capability active (or about to be resumed).
    STOPPING = "stopping"   # Stop requested, waiting for the capability to end.
    STOPPED = "stopped"     # Ended; see StopReason for why.


class StopReason(Enum):
    NONE = "none"
    USER_REQUESTED = "user-requested"
    INACTIVITY_TIMEOUT = "inactivity-timeout"
    PERMISSION_DENIED = "permission-denied"
    FATAL_ERROR = "fatal-error"


class PermissionState(Enum):
    UNKNOWN = "unknown"
    GRANTED = "granted"
    DENIED = "denied"


TERMINAL_STOP_REASONS = frozenset({StopReason.PERMISSION_DENIED, StopReason.FATAL_ERROR})
