"""Monthly on-disk cache of raw PocketSmith event records."""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from .config import CACHE_DIR

logger = logging.getLogger(__name__)


def cache_path(year: int, month: int, cache_dir: Path | None = None) -> Path:
    return (cache_dir or CACHE_DIR) / f"events-{year}-{month:02d}.json"


def _read(year: int, month: int, cache_dir: Path | None) -> Optional[Dict[str, Any]]:
    target = cache_path(year, month, cache_dir)
    if not target.exists():
        return None
    try:
        with target.open('r', encoding='utf-8') as handle:
            data = json.load(handle)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Ignoring unreadable cache file %s: %s", target, exc)
        return None
    if not isinstance(data, dict) or not isinstance(data.get('events'), list):
        logger.warning("Ignoring malformed cache file %s", target)
        return None
    return data


def load_cached_events(year: int, month: int, cache_dir: Path | None = None) -> Optional[List[Dict[str, Any]]]:
    data = _read(year, month, cache_dir)
    return None if data is None else data['events']


def get_cache_metadata(year: int, month: int, cache_dir: Path | None = None) -> Optional[Dict[str, Any]]:
    data = _read(year, month, cache_dir)
    if data is None:
        return None
    metadata = data.get('metadata')
    return metadata if isinstance(metadata, dict) else None


def save_cached_events(
    year: int,
    month: int,
    events: List[Dict[str, Any]],
    cache_dir: Path | None = None,
    now: datetime | None = None,
) -> Path:
    target = cache_path(year, month, cache_dir)
    target.parent.mkdir(parents=True, exist_ok=True)
    payload = {
        'metadata': {
            'year': year,
            'month': month,
            'cached_at': (now or datetime.now(timezone.utc)).isoformat(),
            'event_count': len(events),
        },
        'events': events,
    }
    with target.open('w', encoding='utf-8') as handle:
        json.dump(payload, handle, indent=2)
    return target


def clear_cache(cache_dir: Path | None = None) -> int:
    directory = cache_dir or CACHE_DIR
    if not directory.exists():
        return 0
    removed = 0
    for path in directory.glob('events-*.json'):
        path.unlink()
        removed += 1
    return removed


def get_monthly_events(client, year: int, month: int, cache_dir: Path | None = None,
                       refresh: bool = False) -> List[Dict[str, Any]]:
    """Return a month's raw events from the cache, fetching them when missing."""
    if not refresh:
        cached = load_cached_events(year, month, cache_dir)
        if cached is not None:
            metadata = get_cache_metadata(year, month, cache_dir) or {}
            logger.info(
                "Using cached events for %d-%02d (%d events, cached at %s)",
                year, month, len(cached), metadata.get('cached_at'),
            )
            return cached

    logger.info("No cache used for %d-%02d, fetching from API", year, month)
    events = client.fetch_monthly_events(year, month)
    save_cached_events(year, month, events, cache_dir)
    return events
