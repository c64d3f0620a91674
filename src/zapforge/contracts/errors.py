# src/zapforge/contracts/errors.py
"""Exception hierarchy shared across subsystem boundaries.

Every failure the startup pipeline can raise derives from ZapForgeError so the
CLI can report it uniformly. Filesystem errors raised during store rotation are
NOT wrapped; they propagate as OSError.
"""


class ZapForgeError(Exception):
    """Base class for all zapforge errors."""


# =============================================================================
# Pipeline Stage Failures
# =============================================================================


class StoreOpenError(ZapForgeError):
    """Raised when the metadata store cannot be opened or created."""

    def __init__(self, path: str, reason: str) -> None:
        self.path = path
        self.reason = reason
        super().__init__(f"Cannot open metadata store at {path}: {reason}")


class SchemaLoadError(ZapForgeError):
    """Raised when the schema file is missing or malformed."""


class SchemaVersionError(SchemaLoadError):
    """Raised when the store was created by a different schema version.

    Attributes:
        expected: Version this build of zapforge requires
        found: Version recorded in the store
    """

    def __init__(self, expected: str, found: str) -> None:
        self.expected = expected
        self.found = found
        super().__init__(
            f"Metadata store schema version mismatch: expected {expected}, found {found}. "
            "Restart with --clear-db to move the old store aside."
        )


class MetadataLoadError(ZapForgeError):
    """Raised when the domain metadata (properties + cluster files) cannot be loaded."""


class TemplateLoadError(ZapForgeError):
    """Raised when a template manifest is missing or malformed."""


class GenerationError(ZapForgeError):
    """Raised when code or SDK generation fails."""


class ServerStartError(ZapForgeError):
    """Raised when the HTTP server cannot bind or start."""


# =============================================================================
# Orchestration Invariant Violations
# =============================================================================


class ContextFieldError(ZapForgeError):
    """Raised when a stage tries to overwrite or invent an execution context field."""


class LifecycleTransitionError(ZapForgeError):
    """Raised when a lifecycle signal arrives in a state that cannot accept it."""

    def __init__(self, signal: str, state: str) -> None:
        self.signal = signal
        self.state = state
        super().__init__(f"Lifecycle signal '{signal}' is not valid in state '{state}'")
