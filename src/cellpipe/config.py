# config.py
from dataclasses import dataclass, replace
from typing import Self


@dataclass(frozen=True)
class Config:
    """Immutable configuration object."""

    head_default_lines: int = 10
    csv_separator: str = ","
    csv_skip_head: int = 0
    schema_hash_n_char: int = 12
    # seconds to wait for a producer to settle its schema, None waits forever
    initialize_timeout: float | None = None

    def with_updates(self, **kwargs) -> Self:
        """Create a new Config instance with updated values."""
        return replace(self, **kwargs)

    def merge(self, other: "Config") -> "Config":
        """Merge with another config, other takes precedence."""
        if not isinstance(other, Config):
            raise TypeError("Can only merge with another Config instance")

        # only the values other has changed from the defaults are carried over
        defaults = Config()
        updates = {}
        for field_name in self.__dataclass_fields__:
            other_value = getattr(other, field_name)
            if other_value != getattr(defaults, field_name):
                updates[field_name] = other_value

        return self.with_updates(**updates)


# Module-level default config - created at import time
DEFAULT_CONFIG = Config()
