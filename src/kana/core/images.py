"""
Image freshness cache
Remembers when each image was last pulled so it is only refreshed once per interval
"""

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Optional, Set

from .models import ImageRecord
from ..utils.logger import get_module_logger

logger = get_module_logger("images")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_reference(reference: str) -> str:
    """
    Lower-case an image reference and make its tag explicit

    Examples:
        >>> normalize_reference("WordPress")
        'wordpress:latest'
        >>> normalize_reference("localhost:5000/mariadb")
        'localhost:5000/mariadb:latest'
    """
    reference = reference.strip().lower()
    if "@" in reference:
        return reference
    last_component = reference.rsplit("/", 1)[-1]
    if ":" not in last_component:
        reference = f"{reference}:latest"
    return reference


def _parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class ImageFreshnessCache:
    """
    Persisted map of image reference to the time it was last pulled.

    pull is called with a normalized reference whenever an image is due and
    is expected to raise ImagePullFailure on error. The JSON file is read
    once on construction and rewritten atomically after every pull.
    """

    def __init__(
        self,
        cache_file: Path,
        pull: Callable[[str], None],
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.cache_file = Path(cache_file)
        self._pull = pull
        self._clock = clock
        self._persisted: Dict[str, dict] = {}
        self.records: Dict[str, ImageRecord] = self._load()
        self._checked: Set[str] = set()
        self.pulls = 0

    def _load(self) -> Dict[str, ImageRecord]:
        if not self.cache_file.exists():
            return {}

        try:
            with self.cache_file.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Ignoring unreadable image cache %s: %s", self.cache_file, e)
            return {}

        if not isinstance(data, dict):
            logger.warning("Ignoring malformed image cache %s", self.cache_file)
            return {}

        records = {}
        for reference, entry in data.items():
            try:
                last_checked = _parse_timestamp(entry["last_checked"])
                interval_days = int(entry.get("interval_days", 0))
            except (KeyError, TypeError, ValueError, AttributeError):
                # Incomplete entries count as never checked
                logger.debug("Skipping incomplete image cache entry for %s", reference)
                continue
            records[reference] = ImageRecord(
                reference=reference,
                last_checked=last_checked,
                interval_days=interval_days,
            )
            self._persisted[reference] = entry
        return records

    def _save(self):
        self.cache_file.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(
            dir=str(self.cache_file.parent), prefix=".images-", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._persisted, f, indent=2, sort_keys=True)
                f.write("\n")
            os.replace(tmp_path, self.cache_file)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, reference: str) -> Optional[ImageRecord]:
        return self.records.get(normalize_reference(reference))

    def ensure_image(self, reference: str, interval_days: int) -> bool:
        """
        Pull an image if its interval has elapsed

        Returns:
            True if a pull happened, False if the image was fresh or was
            already checked during this run.
        """
        reference = normalize_reference(reference)

        if reference in self._checked:
            return False

        now = self._clock()
        record = self.records.get(reference)
        if record is not None:
            record.interval_days = interval_days
            if not record.is_due(now):
                logger.debug("Image %s is fresh (pulled %s)", reference, record.last_checked)
                # Only the in-memory record moves; the file keeps the pull time
                record.last_checked = now
                self._checked.add(reference)
                return False

        logger.info("Pulling image %s", reference)
        self._pull(reference)
        self.pulls += 1

        self.records[reference] = ImageRecord(
            reference=reference, last_checked=now, interval_days=interval_days
        )
        self._checked.add(reference)
        self._persisted[reference] = {
            "last_checked": now.isoformat(),
            "interval_days": interval_days,
        }
        self._save()
        return True
