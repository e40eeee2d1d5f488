"""Unit tests for StreamConfig."""

from __future__ import annotations

import pytest

from laakhay.streams.core.config import (
    DEFAULT_BUFFER_SIZE,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_RESPONSE_CHUNK_SIZE,
    StreamConfig,
)


def test_defaults():
    """Defaults use the 16 KiB transport buffer size."""
    config = StreamConfig()
    assert config.chunk_size == DEFAULT_CHUNK_SIZE == 16384
    assert config.max_buffer_size == DEFAULT_BUFFER_SIZE
    assert config.response_chunk_size == DEFAULT_RESPONSE_CHUNK_SIZE


@pytest.mark.parametrize("field", ["chunk_size", "max_buffer_size", "response_chunk_size"])
@pytest.mark.parametrize("value", [0, -5])
def test_rejects_non_positive(field, value):
    """Sizes must be positive."""
    with pytest.raises(ValueError, match=field):
        StreamConfig(**{field: value})


def test_is_frozen():
    """Config is immutable."""
    config = StreamConfig()
    with pytest.raises(AttributeError):
        config.chunk_size = 1


def test_from_env_overrides():
    """Environment variables override defaults."""
    config = StreamConfig.from_env(
        environ={
            "LAAKHAY_STREAMS_CHUNK_SIZE": "1024",
            "LAAKHAY_STREAMS_MAX_BUFFER_SIZE": " ",
            "LAAKHAY_STREAMS_RESPONSE_CHUNK_SIZE": "512",
        }
    )
    assert config.chunk_size == 1024
    assert config.max_buffer_size == DEFAULT_BUFFER_SIZE
    assert config.response_chunk_size == 512


def test_from_env_custom_prefix(monkeypatch):
    """from_env reads os.environ with a custom prefix."""
    monkeypatch.setenv("UPLOADS_CHUNK_SIZE", "2048")
    assert StreamConfig.from_env(prefix="UPLOADS_").chunk_size == 2048


def test_from_env_rejects_garbage():
    """Non-integer values are reported with the variable name."""
    with pytest.raises(ValueError, match="LAAKHAY_STREAMS_CHUNK_SIZE"):
        StreamConfig.from_env(environ={"LAAKHAY_STREAMS_CHUNK_SIZE": "big"})
