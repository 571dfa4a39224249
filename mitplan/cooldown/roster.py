"""Normalize selected-job rosters into one canonical id set."""

import logging
from collections.abc import Iterable, Mapping
from typing import Any

logger = logging.getLogger(__name__)


def _job_ids(entries: Iterable[Any]) -> set[str]:
    ids: set[str] = set()
    for entry in entries:
        if isinstance(entry, str):
            ids.add(entry)
        elif isinstance(entry, Mapping):
            job_id = entry.get("id")
            if isinstance(job_id, str) and entry.get("selected"):
                ids.add(job_id)
        elif entry is not None:
            logger.warning("Ignoring unrecognized roster entry: %r", entry)
    return ids


def normalize_roster(raw: Any) -> frozenset[str]:
    """Collapse any supported roster shape into a frozenset of job ids.

    Accepted shapes:
        - a flat collection of job ids: ``{"SCH", "WAR"}``
        - per-role id lists: ``{"healer": ["SCH"], "tank": ["WAR"]}``
        - legacy per-role job objects:
          ``{"healer": [{"id": "SCH", "selected": True}]}``
        - a direct job flag mapping: ``{"SCH": True}``
    """
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset({raw})
    if isinstance(raw, Mapping):
        ids: set[str] = set()
        for key, value in raw.items():
            if isinstance(value, (list, tuple, set, frozenset)):
                ids |= _job_ids(value)
            elif isinstance(value, bool):
                if value:
                    ids.add(str(key))
            elif value is None:
                continue
            else:
                logger.warning(
                    "Ignoring roster key %r with unsupported value %r", key, value,
                )
        return frozenset(ids)
    if isinstance(raw, Iterable):
        return frozenset(_job_ids(raw))
    logger.warning("Unsupported roster shape: %s", type(raw).__name__)
    return frozenset()
