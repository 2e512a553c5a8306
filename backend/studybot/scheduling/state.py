"""Durable snapshot of the scheduler's job registry."""

import json
import logging
import os
from dataclasses import asdict, dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


@dataclass
class JobSnapshot:
    """One job as recorded at shutdown."""

    name: str
    running: bool = False


class JobStateStore:
    """
    JSON file holding `{"jobs": [{"name": ..., "running": ...}]}`.

    Each write replaces the whole file; nothing is appended.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def write(self, jobs: list[JobSnapshot]) -> None:
        payload = {"jobs": [asdict(job) for job in jobs]}
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        os.replace(tmp_path, self.path)
        logger.info("Saved state for %d jobs to %s", len(jobs), self.path)

    def read(self) -> list[JobSnapshot]:
        """Return the last snapshot, or an empty list if there is none usable."""
        if not self.path.exists():
            logger.info("No job snapshot at %s", self.path)
            return []

        raw = self.path.read_text(encoding="utf-8").strip()
        if not raw:
            return []

        try:
            data = json.loads(raw)
            return [
                JobSnapshot(name=str(item["name"]), running=bool(item.get("running", False)))
                for item in data.get("jobs", [])
            ]
        except (json.JSONDecodeError, KeyError, TypeError, AttributeError):
            logger.exception("Job snapshot at %s is unreadable, ignoring it", self.path)
            return []
