"""One-time initialisation of the fuel station master."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Optional, Sequence

from .. import messages
from ..config import settings
from ..errors import ConfigurationError
from . import station_repository

logger = logging.getLogger(__name__)


class FuelMasterBootstrap:
    """Seeds an empty station master at most once per process.

    Concurrent first callers await the same in-flight task. Its outcome,
    success or failure, is memoized for the lifetime of the object.
    """

    def __init__(self, seed_files: Optional[Sequence[Path]] = None) -> None:
        self.seed_files = seed_files
        self._lock = asyncio.Lock()
        self._task: asyncio.Task[list[str]] | None = None
        self.runs = 0

    @property
    def started(self) -> bool:
        return self._task is not None

    async def ensure_ready(self) -> list[str]:
        """Return the warnings produced by the (single) bootstrap run."""
        async with self._lock:
            if self._task is None:
                self._task = asyncio.create_task(self._bootstrap())
        # A cancelled caller must not cancel the run other callers share.
        warnings = await asyncio.shield(self._task)
        return list(warnings)

    async def _bootstrap(self) -> list[str]:
        self.runs += 1
        warnings: list[str] = []

        count = await asyncio.to_thread(station_repository.count_stations)
        if count is None:
            if settings.station_store_required:
                raise ConfigurationError(
                    "Station store is not configured (STOPPLAN_SUPABASE_URL / STOPPLAN_SUPABASE_KEY)."
                )
            logger.info("Station store not configured; fuel master will be read from seed files")
            return warnings
        if count > 0:
            logger.info(f"Fuel station master already holds {count} stations")
            return warnings

        seed = await asyncio.to_thread(station_repository.load_stations_from_file, self.seed_files)
        if not seed:
            warnings.append(messages.BOOTSTRAP_NO_SEED)
            return warnings

        inserted = await asyncio.to_thread(station_repository.upsert_stations, seed)
        logger.info(f"Seeded fuel station master with {inserted} stations")
        warnings.append(messages.BOOTSTRAP_SEEDED.format(count=inserted))
        return warnings
