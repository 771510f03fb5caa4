"""Configuration for bamcache, loaded from environment variables."""

import os
from dataclasses import dataclass

from .constants import (
    DEFAULT_CACHED_FILE_TTL_SECONDS,
    DEFAULT_FETCH_TIMEOUT_SECONDS,
    DEFAULT_FILTER_DUPLICATES,
    DEFAULT_FILTER_SECONDARY,
    DEFAULT_FILTER_SUPPLEMENTARY,
    DEFAULT_FILTER_VENDOR_FAILED,
    DEFAULT_HOST,
    DEFAULT_LOG_LEVEL,
    DEFAULT_MAX_CACHED_FILES,
    DEFAULT_MAX_FILE_BYTES,
    DEFAULT_MIN_MAPQ,
    DEFAULT_PAIRS_SUPPORTED,
    DEFAULT_PORT,
    DEFAULT_SAMPLING_DEPTH,
    DEFAULT_SAMPLING_WINDOW_SIZE,
    DEFAULT_TRANSPORT,
    MAX_REGION_SIZE,
    VALID_TRANSPORTS,
)


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None or value == "":
        return default
    return value.lower() == "true"


@dataclass
class BamCacheConfig:
    """Reader and server configuration loaded from environment variables."""

    # Sampling settings
    sampling_window_size: int = DEFAULT_SAMPLING_WINDOW_SIZE
    sampling_depth: int = DEFAULT_SAMPLING_DEPTH
    pairs_supported: bool = DEFAULT_PAIRS_SUPPORTED

    # Read filter settings
    filter_duplicates: bool = DEFAULT_FILTER_DUPLICATES
    filter_vendor_failed: bool = DEFAULT_FILTER_VENDOR_FAILED
    filter_secondary: bool = DEFAULT_FILTER_SECONDARY
    filter_supplementary: bool = DEFAULT_FILTER_SUPPLEMENTARY
    min_mapq: int = DEFAULT_MIN_MAPQ

    # Fetch settings
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS
    max_file_bytes: int = DEFAULT_MAX_FILE_BYTES
    max_region_size: int = MAX_REGION_SIZE

    # Decoded-file registry settings
    max_cached_files: int = DEFAULT_MAX_CACHED_FILES
    cached_file_ttl: float = DEFAULT_CACHED_FILE_TTL_SECONDS

    # Transport settings
    transport: str = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    log_level: str = DEFAULT_LOG_LEVEL

    # Security settings
    allowed_directories: list[str] | None = None
    allow_remote_files: bool = False

    def __post_init__(self) -> None:
        """Validate config values."""
        if self.sampling_window_size < 1:
            raise ValueError(
                f"sampling_window_size must be at least 1, got {self.sampling_window_size}"
            )

        if self.sampling_depth < 1:
            raise ValueError(f"sampling_depth must be at least 1, got {self.sampling_depth}")

        if not 0 <= self.min_mapq <= 255:
            raise ValueError(f"min_mapq must be between 0 and 255, got {self.min_mapq}")

        if self.fetch_timeout <= 0:
            raise ValueError(f"fetch_timeout must be positive, got {self.fetch_timeout}")

        if self.max_file_bytes < 1:
            raise ValueError(f"max_file_bytes must be at least 1, got {self.max_file_bytes}")

        if self.max_region_size < 1:
            raise ValueError(f"max_region_size must be at least 1, got {self.max_region_size}")

        if self.max_cached_files < 1:
            raise ValueError(f"max_cached_files must be at least 1, got {self.max_cached_files}")

        if self.cached_file_ttl <= 0:
            raise ValueError(f"cached_file_ttl must be positive, got {self.cached_file_ttl}")

        if self.transport not in VALID_TRANSPORTS:
            raise ValueError(f"transport must be one of {VALID_TRANSPORTS}, got '{self.transport}'")

        if not 1 <= self.port <= 65535:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")

    @classmethod
    def from_env(cls) -> "BamCacheConfig":
        """Create config from environment variables."""
        env = os.environ

        return cls(
            sampling_window_size=int(
                env.get("BAMCACHE_SAMPLING_WINDOW_SIZE", str(DEFAULT_SAMPLING_WINDOW_SIZE))
            ),
            sampling_depth=int(env.get("BAMCACHE_SAMPLING_DEPTH", str(DEFAULT_SAMPLING_DEPTH))),
            pairs_supported=_env_bool(
                env.get("BAMCACHE_PAIRS_SUPPORTED"), DEFAULT_PAIRS_SUPPORTED
            ),
            filter_duplicates=_env_bool(
                env.get("BAMCACHE_FILTER_DUPLICATES"), DEFAULT_FILTER_DUPLICATES
            ),
            filter_vendor_failed=_env_bool(
                env.get("BAMCACHE_FILTER_VENDOR_FAILED"), DEFAULT_FILTER_VENDOR_FAILED
            ),
            filter_secondary=_env_bool(
                env.get("BAMCACHE_FILTER_SECONDARY"), DEFAULT_FILTER_SECONDARY
            ),
            filter_supplementary=_env_bool(
                env.get("BAMCACHE_FILTER_SUPPLEMENTARY"), DEFAULT_FILTER_SUPPLEMENTARY
            ),
            min_mapq=int(env.get("BAMCACHE_MIN_MAPQ", str(DEFAULT_MIN_MAPQ))),
            fetch_timeout=float(
                env.get("BAMCACHE_FETCH_TIMEOUT", str(DEFAULT_FETCH_TIMEOUT_SECONDS))
            ),
            max_file_bytes=int(env.get("BAMCACHE_MAX_FILE_BYTES", str(DEFAULT_MAX_FILE_BYTES))),
            max_region_size=int(env.get("BAMCACHE_MAX_REGION_SIZE", str(MAX_REGION_SIZE))),
            max_cached_files=int(
                env.get("BAMCACHE_MAX_CACHED_FILES", str(DEFAULT_MAX_CACHED_FILES))
            ),
            cached_file_ttl=float(
                env.get("BAMCACHE_CACHED_FILE_TTL", str(DEFAULT_CACHED_FILE_TTL_SECONDS))
            ),
            transport=env.get("BAMCACHE_TRANSPORT", DEFAULT_TRANSPORT),
            host=env.get("BAMCACHE_HOST", DEFAULT_HOST),
            port=int(env.get("BAMCACHE_PORT", str(DEFAULT_PORT))),
            log_level=env.get("BAMCACHE_LOG_LEVEL", DEFAULT_LOG_LEVEL).upper(),
            allowed_directories=[
                d.strip()
                for d in env.get("BAMCACHE_ALLOWED_DIRECTORIES", "").split(",")
                if d.strip()
            ]
            or None,
            allow_remote_files=env.get("BAMCACHE_ALLOW_REMOTE_FILES", "false").lower() == "true",
        )
