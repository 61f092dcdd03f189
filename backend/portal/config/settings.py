"""Environment driven configuration for ``create_app``.

Values come from the process environment (``.env`` is loaded by the app
package); explicit overrides passed to ``create_app`` win over both.
"""
import os
from typing import Any, Dict, Optional

TRUTHY = {'1', 'true', 'yes', 'on'}

DEFAULT_LIMIT = 50
MAX_LIMIT = 200


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in TRUTHY


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}')


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    settings = {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO').upper(),
        # Mutations without If-Match get 428 when enabled
        'EVENTS_REQUIRE_IF_MATCH': env_flag('EVENTS_REQUIRE_IF_MATCH'),
        # Sales and general managers confined to their own branch
        'EVENTS_ENFORCE_BRANCH_SCOPE': env_flag('EVENTS_ENFORCE_BRANCH_SCOPE'),
        'PAGINATION_DEFAULT_LIMIT': env_int('PAGINATION_DEFAULT_LIMIT', DEFAULT_LIMIT),
        'PAGINATION_MAX_LIMIT': env_int('PAGINATION_MAX_LIMIT', MAX_LIMIT),
    }
    if overrides:
        settings.update(overrides)
    return settings


def normalize_pagination(limit_raw, offset_raw, default_limit: int = DEFAULT_LIMIT, max_limit: int = MAX_LIMIT):
    try:
        limit = int(limit_raw) if limit_raw is not None else default_limit
        offset = int(offset_raw) if offset_raw is not None else 0
    except ValueError:
        raise ValueError('limit/offset must be int')
    limit = max(1, min(limit, max_limit))
    offset = max(0, offset)
    return limit, offset
