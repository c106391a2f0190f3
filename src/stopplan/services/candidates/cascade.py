"""Ordered fallback across rest candidate providers."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Sequence

from ...errors import describe_error
from ...models.domain import StopCandidate
from .aggregate import filter_corridor, merge_candidates
from .base import CandidateProvider, ProviderContext

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CascadeResult:
    candidates: list[StopCandidate] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    provider: Optional[str] = None


async def run_rest_cascade(providers: Sequence[CandidateProvider], ctx: ProviderContext) -> CascadeResult:
    """Try providers in order until one yields candidates inside its corridor.

    A provider failure never aborts the cascade: its error text is recorded
    as a warning and the next provider is tried. A later provider that fills
    the gap records its substitution warning.
    """
    result = CascadeResult()
    for position, provider in enumerate(providers):
        try:
            raw = await provider.fetch_candidates(ctx)
        except Exception as exc:
            logger.warning(f"Rest provider '{provider.name}' failed: {exc}")
            result.warnings.append(provider.failure_message.format(error=describe_error(exc)))
            continue

        candidates = filter_corridor(merge_candidates(raw), provider.corridor_km)
        if not candidates:
            logger.info(f"Rest provider '{provider.name}' returned no candidates within {provider.corridor_km} km")
            continue

        if position > 0 and provider.substitution_message:
            result.warnings.append(provider.substitution_message)
        result.candidates = candidates
        result.provider = provider.name
        return result

    return result
