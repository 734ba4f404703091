"""Ingestion pipeline.

Walks an import root, normalizes every entry and hands the records to a
fixed-size pool of upload workers:

    walk (calling thread) -> normalize -> submit -> worker: router.upload()

The walk keeps running while workers upload. At most ``max_pending`` uploads
are in flight; when the window is full the walk waits for the first to
finish. Each submitted upload has its own Future, which is where its
UploadResult (or unexpected exception) is collected. A failing upload never
cancels the others, and ``run`` only returns once every submitted upload has
finished.
"""

from __future__ import annotations

import logging
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Iterable, Optional

from forensic_ingest.ingest.metadata import normalize, walk_entries
from forensic_ingest.ingest.router import TieredUploadRouter, UploadResult, UploadStats
from forensic_ingest.schemas import FileRecord

logger = logging.getLogger(__name__)

DEFAULT_WORKERS = 10

# In-flight uploads per worker when max_pending is not given
PENDING_PER_WORKER = 4

Normalizer = Callable[[Path, Path], Optional[FileRecord]]


@dataclass
class IngestSummary:
    """Summary of one pipeline run."""

    total_entries: int = 0
    dispatched: int = 0
    processed: int = 0
    failed: int = 0
    skipped: int = 0  # entries without metadata
    failures: list[UploadResult] = field(default_factory=list)
    stats: UploadStats = field(default_factory=UploadStats)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_entries": self.total_entries,
            "dispatched": self.dispatched,
            "processed": self.processed,
            "failed": self.failed,
            "skipped": self.skipped,
            "failures": [r.to_dict() for r in self.failures],
            "stats": self.stats.to_dict(),
        }


class IngestionPipeline:
    """Drives the uploads of one import with bounded concurrency."""

    def __init__(
        self,
        router: TieredUploadRouter,
        workers: int = DEFAULT_WORKERS,
        max_pending: Optional[int] = None,
        normalizer: Normalizer = normalize,
    ):
        if workers < 1:
            raise ValueError(f"workers must be at least 1, got {workers}")
        self.router = router
        self.workers = workers
        self.max_pending = max_pending or workers * PENDING_PER_WORKER
        self.normalizer = normalizer

    def run(self, root: Path | str, entries: Optional[Iterable[Path]] = None) -> IngestSummary:
        """Upload every entry below ``root``.

        Args:
            root: Import root.
            entries: Entries to process instead of walking ``root``.

        Returns:
            IngestSummary once all dispatched uploads have finished.
        """
        root = Path(root)
        summary = IngestSummary()
        pending: dict[Future, FileRecord] = {}

        logger.info("Upload entries of %s with %d workers", root, self.workers)
        with ThreadPoolExecutor(
            max_workers=self.workers, thread_name_prefix="upload"
        ) as executor:
            for path in entries if entries is not None else walk_entries(root):
                summary.total_entries += 1
                record = self.normalizer(path, root)
                if record is None:
                    summary.skipped += 1
                    continue

                if len(pending) >= self.max_pending:
                    done, _ = wait(pending, return_when=FIRST_COMPLETED)
                    for future in done:
                        self._collect(future, pending.pop(future), summary)

                pending[executor.submit(self.router.upload, record, path)] = record
                summary.dispatched += 1

            for future, pending_record in pending.items():
                self._collect(future, pending_record, summary)
            pending.clear()

        summary.stats = self.router.stats
        logger.info(
            "Pipeline finished: %d entries, %d uploaded, %d failed, %d skipped",
            summary.total_entries,
            summary.processed,
            summary.failed,
            summary.skipped,
        )
        return summary

    def _collect(self, future: Future, record: FileRecord, summary: IngestSummary) -> None:
        try:
            result = future.result()
        except Exception as e:
            logger.exception("Unexpected error uploading %s", record.relative_path)
            result = UploadResult(relative_path=record.relative_path, error=str(e))

        if result.success:
            summary.processed += 1
        else:
            summary.failed += 1
            summary.failures.append(result)
