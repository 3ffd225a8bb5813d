from __future__ import annotations

from tenacity import AsyncRetrying, retry_if_result, stop_after_attempt, wait_exponential

from signin_agent.browser.envelope import Envelope, ErrorKind

RETRYABLE = frozenset({ErrorKind.EXCEPTION, ErrorKind.NOT_FOUND, ErrorKind.TIMEOUT})


def should_retry(result: Envelope) -> bool:
    return result.code in RETRYABLE


def _last_result(retry_state) -> Envelope:
    return retry_state.outcome.result()


def retrying(max_attempts: int, min_wait: float = 0.25, max_wait: float = 4.0) -> AsyncRetrying:
    """Host-side retry policy for envelope-returning calls.

    Once attempts are exhausted the last envelope is handed back instead of
    raising ``RetryError``.
    """
    return AsyncRetrying(
        stop=stop_after_attempt(max(max_attempts, 1)),
        wait=wait_exponential(multiplier=min_wait, min=min_wait, max=max_wait),
        retry=retry_if_result(should_retry),
        retry_error_callback=_last_result,
    )
