"""Aggregation of sync findings into the canonical operator condition set."""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence

from pydantic import ValidationError

from .logging_config import get_logger, log_sync_event
from .models import KNOWN_CONDITION_TYPES, Condition, ConditionStatus

logger = get_logger(__name__)


def find_condition(conditions: Iterable[Condition], condition_type: str) -> Optional[Condition]:
    """Return the first condition of ``condition_type``, if any."""
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def default_condition(condition_type: str) -> Condition:
    """Condition reported for a known type no finding mentioned."""
    status = ConditionStatus.TRUE if condition_type.endswith("Available") else ConditionStatus.FALSE
    return Condition(type=condition_type, status=status)


def merge_conditions(existing: Sequence[Mapping[str, Any]],
                     updates: Iterable[Condition],
                     now: datetime) -> List[Dict[str, Any]]:
    """Merge ``updates`` into API-shaped ``existing`` conditions.

    Conditions of other types are left untouched. The transition time of an
    updated condition only moves when its status changes.
    """
    merged = [dict(c) for c in existing]
    index = {c.get("type"): i for i, c in enumerate(merged)}

    for update in updates:
        position = index.get(update.type)
        previous = merged[position] if position is not None else None
        transition = now
        if previous is not None and previous.get("status") == update.status.value:
            try:
                kept = Condition.from_api(previous).last_transition_time
            except ValidationError as e:
                logger.warning("Replacing unreadable condition", type=update.type, errors=e.error_count())
                kept = None
            transition = kept or now
        entry = update.model_copy(update={"last_transition_time": transition}).to_api()
        if position is None:
            index[update.type] = len(merged)
            merged.append(entry)
        else:
            merged[position] = entry

    return merged


class ConditionAggregator:
    """Folds the findings of one sync pass into exactly one condition per known type."""

    def __init__(self, status_writer: Any = None, known_types: Iterable[str] = KNOWN_CONDITION_TYPES):
        self.status_writer = status_writer
        self.known_types = sorted(set(known_types))

    def aggregate(self, found: Sequence[Condition]) -> List[Condition]:
        result = []
        for condition_type in self.known_types:
            condition = find_condition(found, condition_type)
            result.append(condition if condition is not None else default_condition(condition_type))

        dropped = sorted({c.type for c in found} - set(self.known_types))
        if dropped:
            logger.warning("Dropping unknown condition types", types=dropped)
        return result

    async def publish(self, found: Sequence[Condition]) -> List[Condition]:
        """Aggregate ``found`` and hand the result to the status writer."""
        conditions = self.aggregate(found)
        if self.status_writer is None:
            raise RuntimeError("ConditionAggregator has no status writer")
        await self.status_writer.update_conditions(conditions)
        log_sync_event(logger, "conditions_published",
                       conditions={c.type: c.status.value for c in conditions})
        return conditions
