"""
Bulk load orchestrator - Loads generated tables into the store in
dependency phases.

    phase 1: destinations, chains, categories
    phase 2: hotels
    phase 3: every hotel_* detail table, concurrently

A phase starts only once every table of the previous phase has finished,
successfully or not. A failing table never stops its siblings. Losing the
store connection marks the rest of the phase failed and stops the run;
phases that already finished stay committed.
"""

import asyncio
import time
from typing import Dict, List, Mapping, Optional

from loguru import logger

from db.store import CONNECTION_ERRORS, RelationalStore
from services.ingestor.config import ImportMode
from services.ingestor.errors import StoreUnavailableError
from services.ingestor.models.base import ImportReport, TableLoadResult
from services.ingestor.tables import TableSpec, phases

LOAD_MODES = {
    "full": "insert-ignore",
    "update": "upsert",
}


class BulkLoadOrchestrator:
    """
    Usage:
        orchestrator = BulkLoadOrchestrator(store)
        await orchestrator.load(sources, "update", report)
    """

    def __init__(self, store: RelationalStore, disable_fk_checks: bool = True):
        self.store = store
        self.disable_fk_checks = disable_fk_checks

    async def truncate_all(self, table_phases: List[List[TableSpec]]) -> None:
        """Empty every table, dependants first."""
        ordered = [spec.name for phase in reversed(table_phases) for spec in phase]
        logger.info(f"Full import: truncating {len(ordered)} tables")
        try:
            await self.store.truncate(ordered)
        except CONNECTION_ERRORS as e:
            raise StoreUnavailableError(f"Store unavailable during truncate: {e}") from e

    async def load(
        self,
        sources: Mapping[str, str],
        mode: ImportMode,
        report: Optional[ImportReport] = None,
    ) -> ImportReport:
        """
        Load every table whose reference is in sources.

        Raises:
            StoreUnavailableError: Connection lost; report holds what was loaded
        """
        report = report or ImportReport(mode=mode)
        load_mode = LOAD_MODES[mode]
        table_phases = phases()

        if mode == "full":
            await self.truncate_all(table_phases)

        for number, tables in enumerate(table_phases, start=1):
            logger.info(f"Phase {number}: loading {', '.join(t.name for t in tables)}")
            results, lost = await self._load_phase(number, tables, sources, load_mode)
            report.per_table.update(results)

            failed = [name for name, r in results.items() if not r.success]
            logger.info(f"Phase {number} done: {len(results) - len(failed)} ok, {len(failed)} failed")

            if lost:
                report.aborted = True
                report.abort_reason = f"Store unavailable during phase {number}"
                raise StoreUnavailableError(report.abort_reason, table=failed[0] if failed else None)

        return report

    async def _load_phase(
        self,
        number: int,
        tables: List[TableSpec],
        sources: Mapping[str, str],
        load_mode: str,
    ):
        lost = False

        async def load_table(spec: TableSpec) -> TableLoadResult:
            nonlocal lost
            if lost:
                return TableLoadResult(success=False, error="Store unavailable", phase=number)

            source = sources.get(spec.name)
            if source is None:
                logger.warning(f"  {spec.name}: nothing to load")
                return TableLoadResult(success=True, rows_affected=0, phase=number)

            start = time.monotonic()
            try:
                rows = await self.store.bulk_load(spec.name, spec.columns, spec.key, source, load_mode)
            except CONNECTION_ERRORS as e:
                lost = True
                logger.error(f"  {spec.name}: store unavailable: {e}")
                return TableLoadResult(
                    success=False, error=str(e), duration=time.monotonic() - start, phase=number
                )
            except Exception as e:
                logger.error(f"  {spec.name}: load failed: {e}")
                return TableLoadResult(
                    success=False, error=str(e), duration=time.monotonic() - start, phase=number
                )

            duration = time.monotonic() - start
            logger.info(f"  {spec.name}: {rows} rows in {duration:.1f}s")
            return TableLoadResult(success=True, rows_affected=rows, duration=duration, phase=number)

        async with self.store.fk_checks_disabled(self.disable_fk_checks):
            results = await asyncio.gather(*[load_table(spec) for spec in tables])

        by_name: Dict[str, TableLoadResult] = {spec.name: r for spec, r in zip(tables, results)}
        return by_name, lost
