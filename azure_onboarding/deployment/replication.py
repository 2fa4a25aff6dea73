"""Waiting for a newly created principal to become visible in the directory.

Role assignments against a principal fail until Entra ID has replicated it,
which can take from seconds to minutes. The wait is best effort: once the
attempt budget is spent the caller continues anyway.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

import structlog

from azure_onboarding.config.models import RetryPolicy

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class PrincipalLookup:
    """Outcome of a single directory lookup."""

    principal_id: str
    found: bool
    display_name: Optional[str] = None
    detail: Optional[str] = None

    @classmethod
    def present(cls, principal_id: str, display_name: Optional[str] = None) -> "PrincipalLookup":
        return cls(principal_id=principal_id, found=True, display_name=display_name)

    @classmethod
    def absent(cls, principal_id: str, detail: Optional[str] = None) -> "PrincipalLookup":
        return cls(principal_id=principal_id, found=False, detail=detail)


@dataclass(frozen=True)
class ReplicationResult:
    principal_id: str
    replicated: bool
    attempts: int
    waited_seconds: float


PrincipalLookupFn = Callable[[str], PrincipalLookup]


def wait_for_principal_replication(
    principal_id: str,
    lookup: PrincipalLookupFn,
    policy: Optional[RetryPolicy] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ReplicationResult:
    """Poll ``lookup`` until the principal is visible or the budget runs out.

    Attempt 1 runs immediately; attempt ``k`` sleeps
    ``base_delay_seconds * 2 ** (k - 2)`` first. Never raises: an error from
    ``lookup`` counts as a miss, and exhausting the budget only logs a warning.

    Args:
        principal_id: Object ID of the service principal or managed identity
        lookup: Directory lookup returning a PrincipalLookup
        policy: Attempt budget and base delay (defaults: 4 attempts, 8s)
        sleep: Injected for tests

    Returns:
        ReplicationResult with ``replicated`` False when the budget ran out
    """
    policy = policy or RetryPolicy()
    waited = 0.0

    for attempt in range(1, policy.max_attempts + 1):
        delay = policy.delay_before(attempt)
        if delay > 0:
            logger.info(
                "Principal not visible yet, waiting",
                principal_id=principal_id,
                attempt=attempt,
                max_attempts=policy.max_attempts,
                delay_seconds=delay,
            )
            sleep(delay)
            waited += delay

        try:
            result = lookup(principal_id)
        except Exception as e:
            logger.warning(
                "Directory lookup failed",
                principal_id=principal_id,
                attempt=attempt,
                error=str(e),
            )
            continue

        if result.found:
            logger.info(
                "Principal replicated",
                principal_id=principal_id,
                display_name=result.display_name,
                attempt=attempt,
            )
            return ReplicationResult(
                principal_id=principal_id,
                replicated=True,
                attempts=attempt,
                waited_seconds=waited,
            )

        logger.debug(
            "Principal not found",
            principal_id=principal_id,
            attempt=attempt,
            detail=result.detail,
        )

    logger.warning(
        "Principal still not visible after all attempts, continuing anyway",
        principal_id=principal_id,
        attempts=policy.max_attempts,
        waited_seconds=waited,
    )
    return ReplicationResult(
        principal_id=principal_id,
        replicated=False,
        attempts=policy.max_attempts,
        waited_seconds=waited,
    )
