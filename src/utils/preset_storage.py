"""File-backed storage for saved generation presets."""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import ValidationError

from src.core.models import DisplayMode, Preset

logger = logging.getLogger(__name__)


class PresetStore:
    """Stores presets as a JSON array in a single file.

    The whole file is rewritten on every change. Records that fail
    validation are skipped when reading but written back untouched, so a
    single bad record never costs the others. A missing file reads as an
    empty collection.

    Attributes:
        path: Location of the JSON file
    """

    def __init__(self, path: Union[str, Path]):
        """Initialize the store.

        Args:
            path: JSON file to read and write
        """
        self.path = Path(path)

    def _read_records(self) -> List[Dict[str, Any]]:
        if not self.path.exists():
            return []

        records = json.loads(self.path.read_text(encoding="utf-8"))
        if not isinstance(records, list):
            raise ValueError(f"Preset file must contain a JSON array: {self.path}")
        return records

    def get_all(self) -> List[Preset]:
        """Load every valid stored preset.

        Returns:
            Presets in stored order; unreadable files read as empty
        """
        try:
            records = self._read_records()
        except (OSError, ValueError) as e:
            logger.error(f"Failed to read presets from {self.path}: {e}")
            return []

        presets = []
        for record in records:
            try:
                presets.append(Preset.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping invalid preset record in {self.path}: {e}")
        return presets

    def _write(self, records: List[Dict[str, Any]]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(records, ensure_ascii=False, indent=2), encoding="utf-8")

    def save(self, preset: Preset) -> None:
        """Insert a preset or replace the record with the same id.

        Args:
            preset: Preset to store

        Raises:
            OSError: If the file cannot be read or written
            ValueError: If the existing file is not a JSON array
        """
        records = self._read_records()
        data = preset.model_dump(mode="json", by_alias=True)

        for i, record in enumerate(records):
            if isinstance(record, dict) and record.get("id") == preset.id:
                records[i] = data
                break
        else:
            records.append(data)

        self._write(records)
        logger.info(f"Saved preset: {preset.name}")

    def delete(self, preset_id: str) -> bool:
        """Delete a preset by id.

        Returns:
            True if a preset was removed, False if none matched

        Raises:
            OSError: If the file cannot be read or written
            ValueError: If the existing file is not a JSON array
        """
        records = self._read_records()
        remaining = [
            r for r in records
            if not (isinstance(r, dict) and r.get("id") == preset_id)
        ]

        if len(remaining) == len(records):
            logger.warning(f"Preset not found for deletion: {preset_id}")
            return False

        self._write(remaining)
        logger.info(f"Deleted preset: {preset_id}")
        return True

    def get_by_id(self, preset_id: str) -> Optional[Preset]:
        """Get a preset by id, or None."""
        for preset in self.get_all():
            if preset.id == preset_id:
                return preset
        return None

    def increment_use_count(self, preset_id: str) -> Optional[Preset]:
        """Record one use of a preset and refresh its update time.

        Returns:
            The updated preset, or None if it does not exist
        """
        preset = self.get_by_id(preset_id)
        if preset is None:
            return None

        preset = preset.model_copy(update={
            "use_count": preset.use_count + 1,
            "updated_at": datetime.now(timezone.utc),
        })
        self.save(preset)
        logger.debug(f"Preset {preset.name} used {preset.use_count} times")
        return preset

    def filter(
        self,
        user_id: Optional[str] = None,
        type: Optional[DisplayMode] = None,
        style: Optional[str] = None,
        search: Optional[str] = None,
    ) -> List[Preset]:
        """Filter presets; every given criterion must match.

        Args:
            user_id: Owner id
            type: Display mode
            style: Exact style
            search: Case-insensitive substring of name or description

        Returns:
            Matching presets in stored order
        """
        results = []
        search_lower = search.lower() if search else None

        for preset in self.get_all():
            if user_id and preset.user_id != user_id:
                continue
            if type and preset.config.type != type:
                continue
            if style and preset.config.style != style:
                continue
            if search_lower:
                in_name = search_lower in preset.name.lower()
                in_description = search_lower in (preset.description or "").lower()
                if not (in_name or in_description):
                    continue
            results.append(preset)

        return results

    def get_user_presets(self, user_id: str) -> List[Preset]:
        """Get all presets owned by a user."""
        return self.filter(user_id=user_id)

    def get_most_used(self, limit: int = 5) -> List[Preset]:
        """Get the most used presets, highest use count first."""
        return sorted(self.get_all(), key=lambda p: p.use_count, reverse=True)[:limit]
