from __future__ import annotations

import asyncio
import logging

from gradmatch.ai.types import AIClient
from gradmatch.core.config import settings
from gradmatch.core.config.scoring import get_scoring_float
from gradmatch.core.errors import AIServiceError, AITimeoutError, NoCatalogError
from gradmatch.core.session_cache import MatchingSessionCache
from gradmatch.matching.faculty import faculty_for_matches
from gradmatch.matching.reasoning import (
    build_program_reasoning,
    build_university_only_reasoning,
    build_unresolved_reasoning,
)
from gradmatch.matching.resolution import resolve_program, resolve_university
from gradmatch.matching.scoring import (
    category_rate,
    determine_category,
    preferred_universities,
    score_all,
    score_program,
    score_university_only,
)
from gradmatch.matching.text import slugify
from gradmatch.schemas.catalog import Catalog, UniversityRecord
from gradmatch.schemas.match import MatchingRun, MatchResult, OrchestratorState
from gradmatch.schemas.profile import CandidateProfile
from gradmatch.services.match_prompt import AIRecommendation, build_match_messages, parse_recommendations

logger = logging.getLogger(__name__)

UNRESOLVED_PREFIX = "unresolved:"


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _annotated_reason(recommendation: AIRecommendation, category: str) -> str:
    reason = recommendation.reason
    if not recommendation.category or recommendation.category == category:
        return reason
    note = f"suggested as {recommendation.category}, ranked {category} on score and admission rate"
    return f"{reason.rstrip('.')} ({note})" if reason else note.capitalize()


def merge_matches(
    ai_results: list[MatchResult],
    fallback_results: list[MatchResult],
    *,
    limit: int,
) -> list[MatchResult]:
    """Dedupe on (university, program) with AI entries winning, then rank and cap."""
    merged: dict[tuple[str, str | None], MatchResult] = {}
    for result in [*ai_results, *fallback_results]:
        merged.setdefault(result.key, result)
    ranked = sorted(merged.values(), key=lambda result: -result.overall_score)
    return ranked[: max(0, limit)]


class MatchOrchestrator:
    """Runs one matching session: a single bounded AI call, then reconciliation with the engine."""

    def __init__(
        self,
        client: AIClient | None,
        *,
        timeout_s: float | None = None,
        max_catalog_entries: int | None = None,
        min_results: int | None = None,
        result_limit: int | None = None,
    ):
        self._client = client
        self._timeout_s = timeout_s if timeout_s is not None else settings.ai_timeout_s
        self._max_catalog_entries = (
            max_catalog_entries if max_catalog_entries is not None else settings.ai_max_catalog_entries
        )
        self._min_results = min_results if min_results is not None else settings.ai_min_results
        self._result_limit = result_limit if result_limit is not None else settings.match_result_limit

    async def _request(self, profile: CandidateProfile, catalog: Catalog) -> list[AIRecommendation]:
        if self._client is None:
            raise AIServiceError("AI recommendation service is not configured.")
        universities = preferred_universities(catalog, profile) or list(catalog.universities)
        messages = build_match_messages(profile, catalog, universities, max_entries=self._max_catalog_entries)
        try:
            text = await asyncio.wait_for(self._client.complete(messages), timeout=self._timeout_s)
        except asyncio.TimeoutError as exc:
            raise AITimeoutError(f"AI recommendation timed out after {self._timeout_s:g}s.") from exc
        except AIServiceError:
            raise
        except Exception as exc:
            raise AIServiceError(f"AI recommendation request failed: {exc}") from exc
        return parse_recommendations(text)

    def _resolve(
        self,
        recommendation: AIRecommendation,
        profile: CandidateProfile,
        catalog: Catalog,
        cache: MatchingSessionCache,
    ) -> tuple[MatchResult, bool]:
        """One AI recommendation as a MatchResult, plus whether it resolved to the catalog.

        The category always follows the blended score and admission rate; a differing
        label from the model only shows up in the reasoning text.
        """
        ai_score = recommendation.score
        university = resolve_university(recommendation.university, catalog.universities, cache=cache)

        if university is None:
            placeholder = UniversityRecord(
                university_id=f"{UNRESOLVED_PREFIX}{slugify(recommendation.university)}",
                name=recommendation.university,
            )
            base = score_university_only(profile, placeholder, recommendation.program)
            blended = self._blend(ai_score, base.overall_score, university_only=True)
            category = determine_category(blended, category_rate(None, placeholder))
            logger.info("ai_recommendation_unresolved university=%s", recommendation.university)
            return (
                base.model_copy(
                    update={
                        "overall_score": blended,
                        "category": category,
                        "reasoning": build_unresolved_reasoning(
                            recommendation.university,
                            recommendation.program,
                            _annotated_reason(recommendation, category),
                        ),
                        "confidence": round(base.confidence / 2, 4),
                        "source": "ai",
                    }
                ),
                False,
            )

        programs = catalog.programs_for(university.university_id)
        program = resolve_program(recommendation.program, programs, target_degree=profile.target_degree)
        if program is None:
            base = score_university_only(profile, university, recommendation.program)
            blended = self._blend(ai_score, base.overall_score, university_only=True)
            category = determine_category(blended, category_rate(None, university))
            logger.info(
                "ai_recommendation_program_unresolved university=%s program=%s",
                university.university_id,
                recommendation.program,
            )
            return (
                base.model_copy(
                    update={
                        "overall_score": blended,
                        "category": category,
                        "reasoning": build_university_only_reasoning(
                            profile,
                            university,
                            research=base.factor_scores.research,
                            suggested_program=recommendation.program,
                            ai_reason=_annotated_reason(recommendation, category),
                        ),
                        "confidence": round((ai_score + base.confidence) / 2, 4),
                        "source": "ai",
                    }
                ),
                True,
            )

        engine = score_program(profile, program, university, cache=cache)
        blended = self._blend(ai_score, engine.overall_score, university_only=False)
        rate = category_rate(program, university)
        category = determine_category(blended, rate)
        reasoning = build_program_reasoning(
            profile,
            program,
            university,
            engine.factor_scores,
            score=blended,
            category=category,
            rate=rate,
            ai_reason=_annotated_reason(recommendation, category),
        )
        return (
            engine.model_copy(
                update={
                    "overall_score": blended,
                    "category": category,
                    "reasoning": reasoning,
                    "confidence": round((ai_score + engine.confidence) / 2, 4),
                    "source": "ai",
                }
            ),
            True,
        )

    @staticmethod
    def _blend(ai_score: float, engine_score: float, *, university_only: bool) -> float:
        if university_only:
            weight = get_scoring_float("matching.blend.ai_weight_university_only", 0.7)
        else:
            weight = get_scoring_float("matching.blend.ai_weight", 0.6)
        return _clamp(ai_score * weight + engine_score * (1 - weight))

    async def run(
        self,
        profile: CandidateProfile,
        catalog: Catalog,
        *,
        cache: MatchingSessionCache | None = None,
    ) -> MatchingRun:
        if catalog.is_empty():
            raise NoCatalogError()

        cache = cache or MatchingSessionCache()
        trail = [OrchestratorState.IDLE]
        error: AIServiceError | None = None
        ai_results: list[MatchResult] = []
        resolved = 0

        trail.append(OrchestratorState.REQUESTING)
        try:
            recommendations = await self._request(profile, catalog)
        except AITimeoutError as exc:
            logger.warning("ai_recommendation_timeout timeout_s=%s", self._timeout_s)
            trail.append(OrchestratorState.TIMED_OUT)
            error = exc
        except AIServiceError as exc:
            logger.warning("ai_recommendation_failed code=%s: %s", exc.code, exc.message)
            trail.append(OrchestratorState.FAILED)
            error = exc
        else:
            trail.append(OrchestratorState.SUCCEEDED)
            seen: set[tuple[str, str | None]] = set()
            for recommendation in recommendations:
                result, in_catalog = self._resolve(recommendation, profile, catalog, cache)
                if result.key in seen:
                    continue
                seen.add(result.key)
                ai_results.append(result)
                resolved += int(in_catalog)
            logger.info(
                "ai_recommendations_parsed count=%s resolved=%s", len(recommendations), resolved
            )

        used_fallback = error is not None or resolved < self._min_results
        if not used_fallback:
            matches = merge_matches(ai_results, [], limit=self._result_limit)
        elif not ai_results:
            matches = score_all(profile, catalog, cache=cache)
        else:
            matches = merge_matches(ai_results, score_all(profile, catalog, cache=cache), limit=self._result_limit)
        if used_fallback:
            logger.info(
                "matching_fallback_used reason=%s ai_results=%s matches=%s",
                error.code if error else "too_few_results",
                len(ai_results),
                len(matches),
            )
        trail.append(OrchestratorState.RECONCILED)

        faculty = faculty_for_matches(matches, catalog, profile)
        trail.append(OrchestratorState.DONE)
        logger.info(
            "matching_run_complete matches=%s faculty=%s cache_hits=%s",
            len(matches),
            len(faculty),
            cache.hits,
        )
        return MatchingRun(
            matches=matches,
            faculty=faculty,
            state_trail=[state.value for state in trail],
            used_fallback=used_fallback,
            error={"code": error.code, "message": error.message} if error else None,
        )
