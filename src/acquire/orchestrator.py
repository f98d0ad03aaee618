"""Concurrent acquisition of several crates.

One pipeline run per spec on a bounded thread pool. The registry snapshot is
refreshed once, before any worker starts, and is only read afterwards.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from constants import Constants
from acquire.events import AcquisitionEvent, Emit, EventKind, discard
from acquire.models import AcquireOptions, AcquisitionOutcome, FailureKind
from acquire.pipeline import acquire_one
from common.logging_utils import extra_context, is_debug_enabled, Timer
from registry.cache import candidate_cache_dirs
from registry.index import RegistryIndex
from versioning.models import PackageSpec

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Outcomes of one invocation, in the order the specs were given."""
    outcomes: List[AcquisitionOutcome] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return all(o.ok for o in self.outcomes)

    @property
    def failed(self) -> List[AcquisitionOutcome]:
        return [o for o in self.outcomes if not o.ok]


class AcquisitionOrchestrator:
    """Drives independent pipelines for a list of specs and gathers their outcomes."""

    def __init__(self, index: RegistryIndex, options: AcquireOptions, emit: Optional[Emit] = None):
        self.index = index
        self.options = options
        self._emit = emit or discard

    def _workers(self, count: int) -> int:
        limit = self.options.max_workers or Constants.MAX_WORKERS
        return max(1, min(count, limit))

    def update_index(self, specs: Sequence[PackageSpec]) -> None:
        """Refresh the snapshot for every requested crate. Raises IndexUpdateError."""
        self._emit(AcquisitionEvent(self.index.url, EventKind.INDEX_UPDATE, "updating"))
        with Timer() as t:
            self.index.update(str(spec.name) for spec in specs)
        self._emit(AcquisitionEvent(self.index.url, EventKind.SUCCEEDED, "updated"))
        logger.debug("Index updated in %d ms", t.duration_ms())

    def _run_one(self, spec: PackageSpec, cache_dirs: Sequence[str]) -> AcquisitionOutcome:
        try:
            return acquire_one(spec, self.index, self.options, cache_dirs, self._emit)
        except Exception as exc:  # pylint: disable=broad-exception-caught
            # Isolate siblings from unexpected bugs in a single run
            logger.exception("Unexpected error while acquiring %s", spec)
            return AcquisitionOutcome.failed(str(spec), FailureKind.FILESYSTEM, f"unexpected error: {exc}")

    def run(self, specs: Sequence[PackageSpec]) -> RunSummary:
        """Acquire every spec concurrently; one failure never stops the others."""
        if self.options.update_index:
            self.update_index(specs)

        cache_dirs: List[str] = []
        if self.options.use_cache:
            cache_dirs = candidate_cache_dirs(self.options.cache_dirs, self.index.path)
            logger.debug("Cache directories probed: %s", cache_dirs)

        summary = RunSummary()
        if not specs:
            return summary

        with ThreadPoolExecutor(max_workers=self._workers(len(specs)), thread_name_prefix="cratedl") as pool:
            futures = [pool.submit(self._run_one, spec, cache_dirs) for spec in specs]
            summary.outcomes = [future.result() for future in futures]

        if is_debug_enabled(logger):
            logger.debug(
                "Acquisition run finished",
                extra=extra_context(
                    event="run",
                    component="orchestrator",
                    total=len(summary.outcomes),
                    failures=len(summary.failed),
                ),
            )
        return summary
