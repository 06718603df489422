from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
import logging
from threading import Lock
from time import perf_counter
from typing import Iterable, Iterator

from sqlalchemy.orm import Session

from app.core.exceptions import (
    ConfigurationError,
    GenerationInProgressError,
    GenerationTransportError,
    MalformedResponseError,
)
from app.services.generator_client import ScheduleGenerator
from app.services.reconciler import Absent, Malformed, ReconciliationResult, reconcile
from app.services.request_builder import build_generation_request
from app.services.staff_registry import list_roster
from app.services import timetable_store

logger = logging.getLogger(__name__)

OVERLOAD_MARKERS = ("503", "service unavailable", "model is overloaded")

MESSAGES = {
    None: "New timetables have been suggested for all relevant classes.",
    "overloaded": "The AI model is currently overloaded or unavailable. Please try again in a few moments.",
    "failed": "Could not generate timetables. Empty schedules are shown instead.",
}

_inflight: set[tuple[str, ...]] = set()
_inflight_lock = Lock()


@contextmanager
def single_flight(class_names: Iterable[str]) -> Iterator[None]:
    key = tuple(sorted(class_names))
    with _inflight_lock:
        if key in _inflight:
            raise GenerationInProgressError(list(key))
        _inflight.add(key)
    try:
        yield
    finally:
        with _inflight_lock:
            _inflight.discard(key)


def is_overload_error(exc: BaseException) -> bool:
    text = str(exc).lower()
    return any(marker in text for marker in OVERLOAD_MARKERS)


@dataclass
class GenerationOutcome:
    result: ReconciliationResult
    advisory: str | None
    message: str
    persisted: bool


def run_generation(
    db: Session,
    generator: ScheduleGenerator,
    *,
    class_names: Iterable[str] | None = None,
    periods_per_day: int,
    days_per_week: int,
    break_count: int,
) -> GenerationOutcome:
    """Build a request, call the generator once and store the reconciled set.

    Request construction errors propagate before any external call. Generator failures
    never propagate: they become fallback grids plus an advisory for the caller. Any
    answer, even one where every class fell back, replaces the stored set; a failed or
    unconfigured call leaves the stored set alone.
    """
    roster = list_roster(db)
    built = build_generation_request(
        roster,
        class_names=class_names,
        periods_per_day=periods_per_day,
        days_per_week=days_per_week,
        breaks_per_day=break_count,
    )
    request = built.request

    with single_flight(request.class_names):
        failure_advisory: str | None = None
        # Set when nothing came back from the generator at all.
        keep_previous = False
        started = perf_counter()
        logger.info(
            "Requesting timetables for %d class(es) with %d staff",
            len(request.class_names),
            len(request.staff_roster),
        )
        try:
            raw = generator.generate(request)
        except GenerationTransportError as exc:
            failure_advisory = "overloaded" if is_overload_error(exc) else "failed"
            keep_previous = True
            logger.warning("Timetable generation failed: %s", exc.message)
            raw = Absent(exc.message)
        except ConfigurationError as exc:
            failure_advisory = "failed"
            keep_previous = True
            logger.warning("Timetable generator not configured: %s", exc.message)
            raw = Absent(exc.message)
        except MalformedResponseError as exc:
            failure_advisory = "failed"
            logger.warning("Timetable generation unusable: %s", exc.message)
            raw = Malformed(exc.message)
        logger.info("Generator finished in %.2fs", perf_counter() - started)

        result = reconcile(raw, request)
        persisted = not keep_previous
        if persisted:
            with timetable_store.write_lock:
                timetable_store.save_timetables(
                    db,
                    result.timetables,
                    fallback_classes=result.fallback_classes,
                    generated=True,
                )

    if failure_advisory is not None:
        advisory = failure_advisory
        message = MESSAGES[failure_advisory]
    elif result.all_fell_back:
        advisory = "failed"
        message = "The AI did not return usable timetables. Empty schedules are shown instead."
    elif result.fallback_classes:
        advisory = "partial"
        message = (
            "Timetables were generated, but empty schedules were used for: "
            + ", ".join(result.fallback_classes)
        )
    else:
        advisory = None
        message = MESSAGES[None]
    return GenerationOutcome(result=result, advisory=advisory, message=message, persisted=persisted)
