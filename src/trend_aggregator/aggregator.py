"""Fan-out over every source adapter with partial-failure tolerance."""

import asyncio
import logging
from typing import Sequence

from .fetcher import SourceError
from .models import FetchResult
from .sources import SourceAdapter

logger = logging.getLogger(__name__)


def describe_failure(label: str, error: BaseException) -> str:
    """Render a failure as "<label> (<cause>)", or just the label without a cause."""
    cause = error.cause if isinstance(error, SourceError) else str(error)
    return f"{label} ({cause})" if cause else label


async def fetch_all_sources(
    country_code: str, adapters: Sequence[SourceAdapter]
) -> FetchResult:
    """
    Run every adapter concurrently and wait for all of them to settle.

    Successful results are concatenated in adapter order. Failures never
    propagate; they are returned as diagnostic strings in `failed_sources`.
    """
    results = await asyncio.gather(
        *(adapter.fetch(country_code) for adapter in adapters),
        return_exceptions=True,
    )

    result = FetchResult()
    for adapter, outcome in zip(adapters, results):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            if not isinstance(outcome, SourceError):
                logger.exception(
                    f"Unexpected error in {adapter.label} adapter", exc_info=outcome
                )
            else:
                logger.warning(f"Source failed for {country_code}: {outcome}")
            result.failed_sources.append(describe_failure(adapter.label, outcome))
        else:
            result.trends.extend(outcome)

    logger.info(
        f"Fetched {len(result.trends)} trends for {country_code} "
        f"({len(result.failed_sources)} sources failed)"
    )
    return result
