"""Batch driver: runs the orchestrator once per user code."""
from __future__ import annotations
import concurrent.futures
import logging
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Optional

from app.core.provisioning_service import ProvisioningOrchestrator, ProvisioningResult

logger = logging.getLogger(__name__)

ResultCallback = Callable[[ProvisioningResult], None]


@dataclass
class BatchSummary:
    results: List[ProvisioningResult] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def succeeded(self) -> int:
        return sum(1 for result in self.results if result.success)

    @property
    def failed(self) -> int:
        return self.total - self.succeeded

    @property
    def failed_codes(self) -> List[str]:
        return [result.user_code for result in self.results if not result.success]


def provision_batch(
    user_codes: Iterable[str],
    orchestrator: ProvisioningOrchestrator,
    workers: int = 1,
    on_result: Optional[ResultCallback] = None,
) -> BatchSummary:
    """Provision every user code and return the per-user results in input order.

    All codes are materialized before the first run starts. With ``workers=1``
    user N+1 starts only after user N reached a terminal state; a larger value
    runs users on a bounded thread pool, each with its own context.

    A failed user never stops the batch. CatalogError from the orchestrator
    propagates to the caller.

    Args:
        user_codes: Codes from the row source
        orchestrator: Orchestrator shared by all runs
        workers: Maximum number of users provisioned concurrently
        on_result: Called with each result as soon as the run ends

    Returns:
        BatchSummary with one result per code
    """
    codes = list(user_codes)
    summary = BatchSummary()
    logger.info("Provisioning %d users (workers=%d)", len(codes), workers)

    if workers <= 1:
        for code in codes:
            result = orchestrator.provision(code)
            summary.results.append(result)
            if on_result:
                on_result(result)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=workers) as executor:
            futures = [executor.submit(orchestrator.provision, code) for code in codes]
            for future in futures:
                result = future.result()
                summary.results.append(result)
                if on_result:
                    on_result(result)

    logger.info("Batch complete: %d succeeded, %d failed", summary.succeeded, summary.failed)
    return summary
