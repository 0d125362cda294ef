"""
Hybrid combiner.

Selects the generators that apply to the requester, runs them concurrently,
and merges their ranked lists into one:

    1. Resolve signals    interaction count + onboarding presence
    2. Select             (generator, predicate) strategy table
    3. Run                thread pool, per-generator isolation + timeout
    4. Merge              confidence desc, registration order on ties,
                          first writer wins
    5. Truncate / fall back to the newest active products

The only error that escapes is ``RecommendationError``, raised when every
generator came back empty and the fallback query failed too.
"""

import contextvars
import time
from concurrent.futures import ThreadPoolExecutor, wait
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple

from config.constants import DEFAULT_GENERATOR_CONFIG, GeneratorConfig
from core.logging import LoggerMixin
from recs.generators import (
    CandidateGenerator,
    CategoryGenerator,
    CollaborativeGenerator,
    KeywordGenerator,
    OnboardingGenerator,
    PopularityGenerator,
    SimilarGenerator,
    TrendingGenerator,
)
from recs.models import (
    GeneratorContext,
    GeneratorRun,
    ProductQuery,
    RecommendationResult,
    UserSignals,
)
from recs.stores import RecommendationStore, StoreError

Predicate = Callable[[UserSignals], bool]


class RecommendationError(Exception):
    """No recommendations could be produced, not even the fallback."""
    pass


# =============================================================================
# Strategy table
# =============================================================================

def always(signals: UserSignals) -> bool:
    return True


def has_onboarding(signals: UserSignals) -> bool:
    return signals.is_authenticated and signals.has_onboarding


def has_history(signals: UserSignals) -> bool:
    return signals.has_history


@dataclass(frozen=True)
class Strategy:
    generator: CandidateGenerator
    applies: Predicate


def default_strategies(
    store: RecommendationStore,
    config: GeneratorConfig = DEFAULT_GENERATOR_CONFIG,
) -> List[Strategy]:
    """
    Registration order breaks confidence ties in the merge, so onboarding
    (1.0) leads trending (1.0) for a shopper who has both.
    """
    return [
        Strategy(OnboardingGenerator(store, config), has_onboarding),
        Strategy(TrendingGenerator(store, config), always),
        Strategy(KeywordGenerator(store, config), has_history),
        Strategy(CategoryGenerator(store, config), has_history),
        Strategy(SimilarGenerator(store, config), has_history),
        Strategy(CollaborativeGenerator(store, config), has_history),
        Strategy(PopularityGenerator(store, config), always),
    ]


def merge_results(results: Sequence[RecommendationResult], limit: int) -> List[str]:
    """
    Priority merge.

    ``results`` must be in registration order; ``sorted`` is stable so equal
    confidences keep it. A product takes the slot of the first result that
    lists it.
    """
    merged: Dict[str, None] = {}
    for result in sorted(results, key=lambda r: -r.score):
        for pid in result.product_ids:
            if pid not in merged:
                merged[pid] = None
    return list(merged)[:limit]


# =============================================================================
# Combiner
# =============================================================================

class HybridCombiner(LoggerMixin):
    """
    Runs the strategy table for one request.

    Stateless between requests: all per-request values travel in a
    ``GeneratorContext``.
    """

    def __init__(
        self,
        store: RecommendationStore,
        strategies: Optional[List[Strategy]] = None,
        timeout_seconds: float = 5.0,
        max_workers: int = 8,
    ):
        self.store = store
        self.strategies = strategies if strategies is not None else default_strategies(store)
        self.timeout_seconds = timeout_seconds
        self.max_workers = max_workers

    # -------------------------------------------------------------------------
    # Signals / selection
    # -------------------------------------------------------------------------

    def resolve_signals(self, user_id: Optional[str]) -> UserSignals:
        """Look up what the selection predicates need. Store failures count as "no signal"."""
        if not user_id:
            return UserSignals()

        interaction_count = 0
        try:
            interaction_count = self.store.count_interactions(user_id)
        except StoreError as e:
            self.logger.warning("Could not count interactions", user_id=user_id, error=str(e))

        has_prefs = False
        try:
            has_prefs = self.store.get_onboarding_preferences(user_id) is not None
        except StoreError as e:
            self.logger.warning("Could not load onboarding preferences", user_id=user_id, error=str(e))

        return UserSignals(user_id=user_id, interaction_count=interaction_count, has_onboarding=has_prefs)

    def select(self, signals: UserSignals) -> List[CandidateGenerator]:
        return [s.generator for s in self.strategies if s.applies(signals)]

    # -------------------------------------------------------------------------
    # Execution
    # -------------------------------------------------------------------------

    @staticmethod
    def _timed(generator: CandidateGenerator, context: GeneratorContext) -> Tuple[RecommendationResult, float]:
        start = time.perf_counter()
        result = generator.generate(context)
        return result, (time.perf_counter() - start) * 1000

    def run_generators(
        self,
        generators: Sequence[CandidateGenerator],
        context: GeneratorContext,
    ) -> List[Tuple[RecommendationResult, GeneratorRun]]:
        """
        Fire all generators, wait up to ``timeout_seconds`` for all of them.

        Output is in the order of ``generators``. A generator that raised or
        did not finish in time contributes an empty result.
        """
        if not generators:
            return []

        executor = ThreadPoolExecutor(
            max_workers=min(self.max_workers, len(generators)),
            thread_name_prefix="recs-gen",
        )
        try:
            # each task gets its own copy of the caller's bound log context
            futures = [
                executor.submit(contextvars.copy_context().run, self._timed, g, context)
                for g in generators
            ]
            _, not_done = wait(futures, timeout=self.timeout_seconds)
        finally:
            # stragglers only read; don't block the request on them
            executor.shutdown(wait=False, cancel_futures=True)

        outcomes = []
        for generator, future in zip(generators, futures):
            run = GeneratorRun(algorithm=generator.algorithm, confidence=generator.confidence)
            result = RecommendationResult.empty(generator.algorithm)

            if future in not_done:
                run.timed_out = True
                run.elapsed_ms = self.timeout_seconds * 1000
                self.logger.warning(
                    "Generator timed out",
                    algorithm=generator.algorithm,
                    timeout_seconds=self.timeout_seconds,
                )
            else:
                try:
                    result, run.elapsed_ms = future.result()
                except Exception as e:
                    run.errored = True
                    self.logger.warning(
                        "Generator raised",
                        algorithm=generator.algorithm,
                        error=str(e),
                        error_type=type(e).__name__,
                    )

            run.count = len(result.product_ids)
            run.product_ids = list(result.product_ids)
            outcomes.append((result, run))

        return outcomes

    def fallback(self, context: GeneratorContext) -> List[str]:
        """Newest active products. Raises RecommendationError if the catalogue is unreachable."""
        try:
            products = self.store.query_active_products(ProductQuery(
                exclude_ids=context.exclude_ids,
                order="newest",
                limit=context.limit,
            ))
        except StoreError as e:
            self.logger.error("Fallback query failed", error=str(e))
            raise RecommendationError("Failed to generate recommendations") from e
        return [p.id for p in products][:context.limit]

    # -------------------------------------------------------------------------
    # Entry points
    # -------------------------------------------------------------------------

    def _context(self, user_id: Optional[str], limit: int, exclude_ids: Iterable[str]) -> GeneratorContext:
        return GeneratorContext(
            user_id=user_id or None,
            limit=limit,
            exclude_ids=frozenset(pid for pid in exclude_ids if pid),
            signals=self.resolve_signals(user_id),
        )

    def recommend(
        self,
        user_id: Optional[str],
        limit: int,
        exclude_ids: Iterable[str] = (),
    ) -> List[str]:
        """Ranked, unique product ids (at most ``limit``)."""
        if limit <= 0:
            return []

        context = self._context(user_id, limit, exclude_ids)
        generators = self.select(context.signals)

        self.logger.info(
            "Running generators",
            user_id=context.user_id or "anonymous",
            interaction_count=context.signals.interaction_count,
            has_onboarding=context.signals.has_onboarding,
            algorithms=[g.algorithm for g in generators],
        )

        outcomes = self.run_generators(generators, context)
        merged = merge_results([result for result, _ in outcomes], limit)

        self.logger.info(
            "Hybrid merge complete",
            per_algorithm={run.algorithm: run.count for _, run in outcomes},
            total=len(merged),
        )

        if merged:
            return merged

        self.logger.info("All generators empty, using fallback")
        return self.fallback(context)

    def diagnose(
        self,
        user_id: Optional[str],
        limit: int,
        exclude_ids: Iterable[str] = (),
    ) -> Dict[str, Any]:
        """Run every applicable generator and report per-generator outcomes."""
        context = self._context(user_id, limit, exclude_ids)
        generators = self.select(context.signals)

        started = time.perf_counter()
        outcomes = self.run_generators(generators, context)
        merged = merge_results([result for result, _ in outcomes], limit)

        return {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "user_id": context.user_id,
            "signals": {
                "authenticated": context.signals.is_authenticated,
                "interaction_count": context.signals.interaction_count,
                "has_onboarding": context.signals.has_onboarding,
            },
            "selected": [g.algorithm for g in generators],
            "skipped": [
                s.generator.algorithm for s in self.strategies
                if s.generator not in generators
            ],
            "generators": [run.to_dict() for _, run in outcomes],
            "merged_count": len(merged),
            "merged_sample": merged[:10],
            "elapsed_ms": round((time.perf_counter() - started) * 1000, 2),
        }
