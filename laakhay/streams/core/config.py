"""Streaming configuration defaults.

Buffer and chunk sizes are plain construction parameters on every component;
StreamConfig groups them for callers that want one place to tune them, e.g.
from the environment.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

# 16 KiB matches the bound-stream buffer used by the platform transports
DEFAULT_CHUNK_SIZE = 16 * 1024
DEFAULT_BUFFER_SIZE = 16 * 1024
DEFAULT_RESPONSE_CHUNK_SIZE = 16 * 1024

ENV_PREFIX = "LAAKHAY_STREAMS_"


@dataclass(frozen=True)
class StreamConfig:
    """Tunable sizes for the byte transport path.

    Attributes:
        chunk_size: Target size of rechunked request body buffers
        max_buffer_size: Maximum bytes the bridge hands to a sink per write
        response_chunk_size: Target size of rechunked response body buffers
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    max_buffer_size: int = DEFAULT_BUFFER_SIZE
    response_chunk_size: int = DEFAULT_RESPONSE_CHUNK_SIZE

    def __post_init__(self) -> None:
        """Validate configured sizes."""
        for name in ("chunk_size", "max_buffer_size", "response_chunk_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")

    @classmethod
    def from_env(
        cls,
        prefix: str = ENV_PREFIX,
        environ: Mapping[str, str] | None = None,
    ) -> StreamConfig:
        """Build a config from environment variables.

        Reads ``<prefix>CHUNK_SIZE``, ``<prefix>MAX_BUFFER_SIZE`` and
        ``<prefix>RESPONSE_CHUNK_SIZE``; missing variables keep their defaults.

        Args:
            prefix: Variable name prefix
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            StreamConfig with overrides applied

        Raises:
            ValueError: If a variable is not a positive integer
        """
        env = os.environ if environ is None else environ
        overrides: dict[str, int] = {}
        for name in ("chunk_size", "max_buffer_size", "response_chunk_size"):
            raw = env.get(f"{prefix}{name.upper()}")
            if raw is None or raw.strip() == "":
                continue
            try:
                overrides[name] = int(raw)
            except ValueError as e:
                raise ValueError(f"{prefix}{name.upper()} must be an integer, got {raw!r}") from e
        return cls(**overrides)
