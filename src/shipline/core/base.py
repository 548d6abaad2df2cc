"""Base classes for configuration and state models.

Configuration sections are frozen: the configuration tree is built
once at startup and handed to every pipeline stage read-only.
Runtime state sections stay mutable so the workflow can record
what each stage did.

Kept in a separate module so that config.py and log.py can both
import it without a cycle.
"""

from __future__ import annotations

import sys
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict


@runtime_checkable
class Closeable(Protocol):
    """Protocol for objects that support close()."""

    def close(self) -> None:
        """Release resources."""
        ...


class BaseCloseable(BaseModel):
    """Model that closes its Closeable children on close().

    Usable as a context manager. A failing child close() is reported
    on stderr and does not stop the remaining children from closing,
    so cleanup never hides the build outcome:
    Config.close() → Logger.close() → Sink.close()
    """

    def close(self):
        """Close every field value that implements Closeable."""
        for field_name in self.__class__.model_fields:
            child = getattr(self, field_name, None)
            if child is None:
                continue

            if isinstance(child, Closeable):
                try:
                    child.close()
                except Exception as e:
                    print(
                        f"Warning: Error closing {field_name}: {e}",
                        file=sys.stderr,
                    )

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):  # noqa: U100
        self.close()
        return False


class BaseConfig(BaseCloseable):
    """Base class for immutable configuration sections."""

    model_config = ConfigDict(frozen=True)


class BaseState(BaseCloseable):
    """Base class for mutable runtime state sections."""

    model_config = ConfigDict(arbitrary_types_allowed=True)


__all__ = ["Closeable", "BaseCloseable", "BaseConfig", "BaseState"]
