# src/zapforge/app/context.py
"""Execution context threaded through the startup pipeline.

Each stage receives the context produced by its predecessor and returns an
extended copy. A field, once set, is never changed: extend() refuses to
overwrite it. This keeps a stage from silently undoing an earlier one.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from zapforge.contracts.errors import ContextFieldError

if TYPE_CHECKING:
    from zapforge.core.store.database import MetadataStore


@dataclass(frozen=True, slots=True)
class ExecutionContext:
    """Append-only result of the pipeline stages.

    Attributes:
        store: Open metadata store (stage open_store)
        attached: Store registered as the current handle (stage attach_store)
        schema_version: Version pinned in the store (stage load_schema)
        package_id: Domain metadata package (stage load_metadata)
        template_package_id: Generation template package (stage load_templates)
    """

    store: MetadataStore | None = None
    attached: bool = False
    schema_version: str | None = None
    package_id: int | None = None
    template_package_id: int | None = None

    def is_set(self, name: str) -> bool:
        """Whether a stage has already set field name."""
        value = getattr(self, name)
        return value is not None and value is not False

    def extend(self, **fields: Any) -> ExecutionContext:
        """Return a copy with additional fields set.

        Raises:
            ContextFieldError: If a field is unknown or already set.
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = sorted(set(fields) - known)
        if unknown:
            raise ContextFieldError(f"Unknown execution context field(s): {', '.join(unknown)}")
        already_set = sorted(name for name in fields if self.is_set(name))
        if already_set:
            raise ContextFieldError(f"Execution context field(s) already set: {', '.join(already_set)}")
        return dataclasses.replace(self, **fields)

    def require_store(self) -> MetadataStore:
        """The open store.

        Raises:
            ContextFieldError: If no stage has opened the store yet.
        """
        if self.store is None:
            raise ContextFieldError("Execution context has no store; open_store has not run")
        return self.store
