from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Iterable, List, Tuple

from services.sync_context import SyncContext


@dataclass
class CleanupReport:
    deleted: List[str] = field(default_factory=list)
    failed: List[Tuple[str, str]] = field(default_factory=list)     # (ref, error message)


class BatchCleanup:
    """
    Deletes stored assets on a small thread pool.

    Individual failures are logged and collected in the report, never raised:
    the caller deletes its database rows whatever happens to the files.
    """

    def __init__(self, asset_store, max_workers: int = 5):
        self.asset_store = asset_store
        self.max_workers = max(1, max_workers)

    def cleanup(self, ctx: SyncContext, refs: Iterable[str]) -> CleanupReport:
        unique = list(dict.fromkeys(r for r in refs if r and r.strip()))
        report = CleanupReport()
        if not unique:
            return report

        ctx.logger.info("Deleting %d asset(s) with %d worker(s)", len(unique), self.max_workers)
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {pool.submit(self.asset_store.delete, ref): ref for ref in unique}
            for future in as_completed(futures):
                ref = futures[future]
                try:
                    future.result()
                except Exception as e:
                    message = getattr(e, "message", str(e))
                    ctx.logger.warning("Failed to delete asset %s: %s", ref, message)
                    report.failed.append((ref, message))
                else:
                    report.deleted.append(ref)
        return report
