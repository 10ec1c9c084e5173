"""
Monitor cache kept in sync with server-pushed deltas.

The server pushes three kinds of events for its monitor list:

- monitorList: the complete collection (replace)
- updateMonitorIntoList: a one-entry envelope holding a single monitor (upsert)
- deleteMonitorFromList: a monitor id (delete)

Monitor ids are normalized to strings so that ``1`` and ``"1"`` address the
same entry.
"""
import logging
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)

GROUP_KIND = "group"


def monitor_key(monitor_id: Any) -> str:
    """Normalize a monitor id to its cache key."""
    return str(monitor_id)


def monitor_kind(monitor: Dict[str, Any]) -> Optional[str]:
    """Kind of a monitor, read from ``type`` and falling back to ``kind``."""
    kind = monitor.get("type")
    if kind is None:
        kind = monitor.get("kind")
    return kind


class MonitorCache:
    """Mapping of monitor id to monitor for one connection."""

    def __init__(self):
        self._monitors: Dict[str, Dict[str, Any]] = {}

    def __len__(self) -> int:
        return len(self._monitors)

    def __contains__(self, monitor_id: Any) -> bool:
        return monitor_key(monitor_id) in self._monitors

    def get(self, monitor_id: Any) -> Optional[Dict[str, Any]]:
        return self._monitors.get(monitor_key(monitor_id))

    def values(self) -> List[Dict[str, Any]]:
        """Snapshot of all cached monitors, in no particular order."""
        return list(self._monitors.values())

    def replace_all(self, data: Any) -> None:
        """
        Replace the whole cache with a pushed monitor list.

        Args:
            data: Mapping of id -> monitor. A list of monitors is also
                accepted and keyed by each monitor's ``id``. Entries that
                are not objects are skipped.
        """
        if isinstance(data, dict):
            monitors = {
                monitor_key(k): v
                for k, v in data.items()
                if isinstance(v, dict)
            }
            skipped = sum(1 for v in data.values() if not isinstance(v, dict))
            if skipped:
                logger.warning(f"Ignoring {skipped} monitor list entries that are not objects")
        elif isinstance(data, list):
            monitors = {
                monitor_key(m["id"]): m
                for m in data
                if isinstance(m, dict) and "id" in m
            }
        else:
            logger.warning(f"Ignoring monitor list of unexpected type {type(data).__name__}")
            return

        self._monitors = monitors
        logger.info(f"Monitor list received ({len(monitors)} monitors)")

    def upsert(self, envelope: Any) -> None:
        """
        Insert or overwrite a single monitor.

        Args:
            envelope: Object with exactly one value, the monitor; its key is
                arbitrary and ignored.
        """
        if not isinstance(envelope, dict) or not envelope:
            logger.warning("Ignoring empty monitor update")
            return

        monitor = next(iter(envelope.values()))
        if not isinstance(monitor, dict) or "id" not in monitor:
            logger.warning("Ignoring monitor update without an id")
            return

        self._monitors[monitor_key(monitor["id"])] = monitor
        logger.info(f"Monitor updated: {monitor['id']}")

    def delete(self, monitor_id: Any) -> None:
        """Remove a monitor; unknown ids are ignored."""
        self._monitors.pop(monitor_key(monitor_id), None)
        logger.info(f"Monitor deleted: {monitor_id}")

    def groups(self) -> List[Dict[str, Any]]:
        """Group monitors projected to ``id`` and ``name``."""
        return [
            {"id": m.get("id"), "name": m.get("name")}
            for m in self._monitors.values()
            if monitor_kind(m) == GROUP_KIND
        ]
