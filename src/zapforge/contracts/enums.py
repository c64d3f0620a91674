"""Status codes, modes, and kinds used across subsystem boundaries."""

from enum import StrEnum


class Command(StrEnum):
    """Terminal workflow selected for a process invocation.

    Values are the CLI tokens; NORMAL has no token and is the fallback.
    """

    SELF_CHECK = "selfCheck"
    GENERATE = "generate"
    SDK_GEN = "sdkGen"
    NORMAL = "normal"


class LifecycleState(StrEnum):
    """State of the long-lived application after Normal mode starts."""

    NOT_STARTED = "not_started"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"
    STOPPED = "stopped"


class Environment(StrEnum):
    """Deployment environment, selects default log level."""

    DEVELOPMENT = "development"
    PRODUCTION = "production"


class PackageType(StrEnum):
    """Kind of package recorded in the store.

    Stored in the database (packages.type).
    """

    ZCL_PROPERTIES = "zcl-properties"
    GEN_TEMPLATES = "gen-templates-json"
