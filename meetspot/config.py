"""Runtime settings.

Values come from the environment (a local .env file is loaded first), falling
back to the defaults below.
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

PLACEHOLDER_API_KEY = "your_api_key_here"
LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw == '':
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


@dataclass(frozen=True)
class Settings:
    google_maps_api_key: Optional[str] = None
    result_count: int = 6
    cluster_radius_meters: float = 300.0
    cluster_min_neighbors: int = 2
    district_radius_meters: float = 300.0
    details_cache_ttl_seconds: float = 3600.0
    search_cache_ttl_seconds: float = 3600.0
    maps_retry_max: int = 3
    maps_retry_backoff_seconds: float = 1.0
    vibe_keywords_path: Optional[str] = None
    districts_path: Optional[str] = None
    log_file: Optional[str] = 'app.log'
    log_level: str = 'INFO'

    @property
    def has_api_key(self) -> bool:
        return bool(self.google_maps_api_key) and self.google_maps_api_key != PLACEHOLDER_API_KEY

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> 'Settings':
        if load_env_file:
            load_dotenv()
        settings = cls(
            google_maps_api_key=os.getenv('GOOGLE_MAPS_API_KEY'),
            result_count=_env_int('RESULT_COUNT', cls.result_count),
            cluster_radius_meters=_env_float('CLUSTER_RADIUS_METERS', cls.cluster_radius_meters),
            cluster_min_neighbors=_env_int('CLUSTER_MIN_NEIGHBORS', cls.cluster_min_neighbors),
            district_radius_meters=_env_float('DISTRICT_RADIUS_METERS', cls.district_radius_meters),
            details_cache_ttl_seconds=_env_float('DETAILS_CACHE_TTL_SECONDS', cls.details_cache_ttl_seconds),
            search_cache_ttl_seconds=_env_float('SEARCH_CACHE_TTL_SECONDS', cls.search_cache_ttl_seconds),
            maps_retry_max=_env_int('MAPS_RETRY_MAX', cls.maps_retry_max),
            maps_retry_backoff_seconds=_env_float('MAPS_RETRY_BACKOFF_SECONDS', cls.maps_retry_backoff_seconds),
            vibe_keywords_path=os.getenv('VIBE_KEYWORDS_PATH') or None,
            districts_path=os.getenv('DISTRICTS_PATH') or None,
            log_file=os.getenv('LOG_FILE', cls.log_file) or None,
            log_level=os.getenv('LOG_LEVEL', cls.log_level).upper(),
        )
        if settings.result_count < 1:
            raise ValueError("RESULT_COUNT must be at least 1")
        if settings.maps_retry_max < 1:
            raise ValueError("MAPS_RETRY_MAX must be at least 1")
        return settings


def configure_logging(settings: Settings) -> None:
    handlers = [logging.StreamHandler()]
    if settings.log_file:
        handlers.insert(0, logging.FileHandler(settings.log_file))
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
    )
