"""Category intelligence engine.

Turns a free-text item title into ranked marketplace categories, each with
the aspects that could be auto-detected and the required aspects the user
still has to supply.

Pipeline per ``analyze_item`` call:
1. taxonomy suggestions for the title (empty -> empty result, no more calls)
2. the first MAX_SUGGESTIONS candidates only, in the service's order
3. per candidate, concurrently: aspect schema fetch + auto-detection
4. result assembled at each candidate's original index
"""
import asyncio
import logging
from typing import Mapping, Optional

from category_intel.config import config
from category_intel.detectors import AspectAutoDetector
from category_intel.fields import create_dynamic_fields
from category_intel.models import (
    AspectConstraint,
    CategorySuggestion,
    DynamicField,
    SmartCategoryResult,
    SuggestedCategory,
)
from category_intel.performance import PerformanceTracker
from category_intel.submission import Price, SubmissionValidator
from category_intel.taxonomy import TaxonomyClient

logger = logging.getLogger(__name__)


def get_required_user_input(
    aspects: list[AspectConstraint],
    user_aspects: Mapping[str, list[str]],
) -> list[str]:
    """Names of required aspects with no value (absent or empty) in ``user_aspects``."""
    return [a.name for a in aspects if a.required and not user_aspects.get(a.name)]


class CategoryIntelligenceEngine:
    def __init__(
        self,
        taxonomy: TaxonomyClient,
        detector: Optional[AspectAutoDetector] = None,
        tracker: Optional[PerformanceTracker] = None,
        max_suggestions: Optional[int] = None,
        partial_results: Optional[bool] = None,
    ):
        self.taxonomy = taxonomy
        self.detector = detector or AspectAutoDetector()
        self.tracker = tracker or PerformanceTracker()
        self.max_suggestions = max_suggestions or config.MAX_SUGGESTIONS
        self.partial_results = config.PARTIAL_RESULTS if partial_results is None else partial_results

    async def analyze_item(self, title: str, description: Optional[str] = None) -> SmartCategoryResult:
        """Suggest categories for an item and pre-fill their aspects.

        Raises:
            EmptyQueryError: ``title`` is blank.
            TaxonomyError: the suggestion call failed, or (unless partial
                results are enabled) any candidate's aspect fetch failed.
        """
        return await self.tracker.track_category_analysis(
            lambda: self._analyze(title, description), title
        )

    async def _analyze(self, title: str, description: Optional[str]) -> SmartCategoryResult:
        logger.info("Analyzing item: %s", title)
        suggestions = await self.taxonomy.suggest_categories(title)
        if not suggestions:
            logger.info("No category suggestions for %r", title)
            return SmartCategoryResult()

        window = suggestions[: self.max_suggestions]
        tasks = [asyncio.ensure_future(self._analyze_candidate(s, title, description)) for s in window]
        try:
            results = await asyncio.gather(*tasks, return_exceptions=self.partial_results)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        entries: list[SuggestedCategory] = []
        for suggestion, result in zip(window, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, Exception):
                logger.warning("Skipping category %s: %s", suggestion.category.id, result)
                entries.append(
                    SuggestedCategory(
                        category_id=suggestion.category.id,
                        category_name=suggestion.category.name,
                        confidence=suggestion.relevancy_tier,
                        error=str(result),
                    )
                )
            else:
                entries.append(result)

        recommended = next((e.category_id for e in entries if e.error is None), "")
        logger.info("Analyzed %d categories, recommended %s", len(entries), recommended or "none")
        return SmartCategoryResult(suggested_categories=entries, recommended_category=recommended)

    async def _analyze_candidate(
        self,
        suggestion: CategorySuggestion,
        title: str,
        description: Optional[str],
    ) -> SuggestedCategory:
        category = suggestion.category
        aspects = await self.taxonomy.aspects_for_category(category.id)
        detected = self.detector.detect(
            category.id, title, description or "", aspects, category_path=suggestion.path
        )
        return SuggestedCategory(
            category_id=category.id,
            category_name=category.name,
            confidence=suggestion.relevancy_tier,
            auto_detected_aspects=detected,
            required_user_input=get_required_user_input(aspects, detected),
        )

    def get_required_user_input(
        self,
        aspects: list[AspectConstraint],
        user_aspects: Mapping[str, list[str]],
    ) -> list[str]:
        return get_required_user_input(aspects, user_aspects)

    def create_dynamic_fields(
        self,
        aspects: list[AspectConstraint],
        auto_detected: Mapping[str, list[str]],
    ) -> list[DynamicField]:
        return create_dynamic_fields(aspects, auto_detected)

    async def fields_for(self, category_id: str, auto_detected: Mapping[str, list[str]]) -> list[DynamicField]:
        """Fetch a category's schema and build the fields still to fill."""

        async def build() -> list[DynamicField]:
            aspects = await self.taxonomy.aspects_for_category(category_id)
            return create_dynamic_fields(aspects, auto_detected)

        return await self.tracker.track_dynamic_field_generation(build, category_id)

    async def validate(
        self,
        fields: list[DynamicField],
        aspects: Mapping[str, list[str]],
        category_id: Optional[str],
        price: Price,
        condition: Optional[str] = None,
    ) -> list[str]:
        """Pre-submission checks, including the leaf-category rule."""
        validator = SubmissionValidator(self.taxonomy)
        return await self.tracker.track_validation(
            lambda: validator.validate(fields, aspects, category_id, price, condition),
            len(fields),
        )


class AnalysisCoordinator:
    """Runs analyses for a changing query, keeping only the newest.

    Starting an analysis cancels the one still in flight; the superseded call
    returns None instead of a stale result.
    """

    def __init__(self, engine: CategoryIntelligenceEngine):
        self.engine = engine
        self._current: Optional[asyncio.Task] = None
        self._generation = 0

    async def analyze(self, title: str, description: Optional[str] = None) -> Optional[SmartCategoryResult]:
        self._generation += 1
        generation = self._generation
        self.cancel_pending()
        task = asyncio.ensure_future(self.engine.analyze_item(title, description))
        self._current = task
        try:
            result = await task
        except asyncio.CancelledError:
            if generation != self._generation:
                logger.info("Analysis for %r superseded", title)
                return None
            raise
        if generation != self._generation:
            return None
        return result

    def cancel_pending(self):
        if self._current is not None and not self._current.done():
            self._current.cancel()
