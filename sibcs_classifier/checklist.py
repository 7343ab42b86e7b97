"""Field checklist question bank and next-step construction."""

import re
from collections.abc import Iterable
from enum import Enum
from functools import lru_cache
from types import MappingProxyType

from pydantic import BaseModel, ConfigDict

from sibcs_classifier.config import load_yaml_config
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    ExpectedImpact,
    MissingItem,
    NextStep,
    SoilOrder,
    StepAction,
)

logger = get_logger(__name__)

CHECKLIST_FILE = "checklist.yaml"

NEXT_STEP_WHY = "Necessário para confirmar a classificação com maior certeza."

# Standalone tokens that mark a missing item as a laboratory request.
LAB_TOKEN_PATTERN = re.compile(r"(?<![a-zà-ÿ])(ca|mg|k|h\+al|argila|ph|v%)(?![a-zà-ÿ])")


class AnswerType(str, Enum):
    NUMBER_CM = "number_cm"
    YES_NO = "yes_no"
    YES_NO_UNKNOWN = "yes_no_unknown"
    SATURATION = "saturation"


class ChecklistQuestion(BaseModel):
    """One curated field question and the orders its answer bears on."""

    model_config = ConfigDict(frozen=True)

    id: str
    section: str
    question: str
    how_to_observe: str
    answer_type: AnswerType
    field_key: str
    favors_orders: tuple[SoilOrder, ...] = ()
    penalizes_orders: tuple[SoilOrder, ...] = ()


@lru_cache(maxsize=1)
def _load_checklist() -> tuple[
    tuple[ChecklistQuestion, ...], MappingProxyType[SoilOrder, tuple[NextStep, ...]]
]:
    data = load_yaml_config(CHECKLIST_FILE)
    questions = tuple(ChecklistQuestion(**row) for row in data.get("questions") or [])
    confirmation = MappingProxyType(
        {
            SoilOrder(order): tuple(NextStep(**step) for step in steps or [])
            for order, steps in (data.get("order_confirmation") or {}).items()
        }
    )
    logger.debug(
        f"Loaded {len(questions)} checklist questions, "
        f"{len(confirmation)} order confirmation blocks"
    )
    return questions, confirmation


def list_checklist_questions() -> tuple[ChecklistQuestion, ...]:
    """All checklist questions in presentation order."""
    return _load_checklist()[0]


def questions_for_order(order: SoilOrder) -> list[ChecklistQuestion]:
    """Questions whose answer favors or penalizes ``order``."""
    return [
        question
        for question in list_checklist_questions()
        if order in question.favors_orders or order in question.penalizes_orders
    ]


def build_order_confirmation_checklist(order: SoilOrder) -> list[NextStep]:
    """Confirmation steps for the probable order (empty for most orders)."""
    return list(_load_checklist()[1].get(order, ()))


def is_lab_request(text: str) -> bool:
    return LAB_TOKEN_PATTERN.search(text.lower()) is not None


def build_next_steps(missing: Iterable[MissingItem]) -> list[NextStep]:
    """Turn missing critical data into field checks or lab tests."""
    return [
        NextStep(
            action=StepAction.LAB_TEST if is_lab_request(item.detail) else StepAction.FIELD_CHECK,
            what=item.detail,
            why=NEXT_STEP_WHY,
            expected_impact=ExpectedImpact.RAISE_CONFIDENCE,
        )
        for item in missing
    ]


def merge_next_steps(
    base: Iterable[NextStep], extra: Iterable[NextStep]
) -> list[NextStep]:
    """Concatenate step lists, keeping the first of each (action, text) pair."""
    seen: set[tuple[StepAction, str]] = set()
    merged: list[NextStep] = []
    for step in [*base, *extra]:
        key = (step.action, step.what.strip().lower())
        if key in seen:
            continue
        seen.add(key)
        merged.append(step)
    return merged


def clear_checklist_cache() -> None:
    _load_checklist.cache_clear()
