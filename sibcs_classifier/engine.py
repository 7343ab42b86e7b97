"""Classification pipeline and response assembly.

``classify`` is a pure function: it reads only the request and the static
configuration tables, and returns a fresh outcome. Calling it twice with the
same input yields equal results.
"""

import copy
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from sibcs_classifier.alerts import build_agronomic_alerts, build_management_notes
from sibcs_classifier.chemistry import round2
from sibcs_classifier.checklist import (
    build_next_steps,
    build_order_confirmation_checklist,
    list_checklist_questions,
    merge_next_steps,
)
from sibcs_classifier.config import EngineSettings, get_settings
from sibcs_classifier.logging_config import get_logger
from sibcs_classifier.models import (
    Alternative,
    Audit,
    ChecklistSummary,
    ClassificationOutcome,
    ClassificationRequest,
    ClassificationResult,
    DerivedMetrics,
    EngineMode,
    EvidenceItem,
    MissingItem,
    PrimaryResult,
    ResultBlock,
    SoilOrder,
    TriState,
    ValidationResult,
)
from sibcs_classifier.normalization import normalize_request
from sibcs_classifier.reference import check_reference_ranges, find_order_profile
from sibcs_classifier.rules import V_PERCENT_MISSING, ProfileMetrics
from sibcs_classifier.scoring import ScoringResult, score_orders
from sibcs_classifier.suborders import suggest_suborder
from sibcs_classifier.validation import validate_request

logger = get_logger(__name__)

INSUFFICIENT_DATA = "Dados insuficientes para classificação conclusiva."
PARTIAL_EVIDENCE = "Competiu por evidências parciais."
NO_POSITIVE_EVIDENCE = "Sem evidências positivas suficientes para confirmar uma ordem."
VALIDATION_PREFIX = "Validação de entrada: "


def _locate(data: Any, loc: tuple[Any, ...]) -> tuple[Any, Any] | None:
    """Deepest (container, key) pair of an error location present in ``data``."""
    found = None
    node = data
    for part in loc:
        if isinstance(node, dict) and part in node:
            found = (node, part)
        elif isinstance(node, list) and isinstance(part, int) and 0 <= part < len(node):
            found = (node, part)
        else:
            break
        node = node[part]
    return found


def _coerce_request(
    payload: ClassificationRequest | Mapping[str, Any],
) -> tuple[ClassificationRequest, list[str]]:
    """Build a request from a payload, turning schema errors into messages.

    An invalid value is reset to its default (an invalid layer becomes an
    empty layer) and reported, so the rest of the payload is still used.
    Only a payload that is not a mapping at all yields an empty request.
    """
    if isinstance(payload, ClassificationRequest):
        return payload, []

    data = copy.deepcopy(dict(payload)) if isinstance(payload, Mapping) else payload
    problems: list[str] = []
    while True:
        try:
            request = ClassificationRequest.model_validate(data)
            break
        except ValidationError as e:
            targets = {}
            for err in e.errors():
                problems.append(
                    f"Payload inválido em {'.'.join(str(p) for p in err['loc']) or 'raiz'}: "
                    f"{err['msg']}"
                )
                target = _locate(data, tuple(err["loc"]))
                if target is None:
                    logger.warning(f"Request payload is not usable: {problems}")
                    return ClassificationRequest(), problems
                targets[(id(target[0]), target[1])] = target

            for container, key in targets.values():
                if isinstance(container, dict):
                    del container[key]
                else:
                    container[key] = {}

    if problems:
        logger.warning(f"Request payload values reset to defaults: {problems}")
    return request, problems


def _derived_metrics(metrics: ProfileMetrics) -> DerivedMetrics:
    horizon = metrics.horizon.rounded()
    return DerivedMetrics(
        abrupt_textural_change=metrics.abrupt_textural_change,
        sb=horizon.sb,
        t=horizon.t,
        v_percent=horizon.v_percent,
        m_percent=horizon.m_percent,
        layer_used_for_bt=metrics.horizon_label,
    )


def _observed_for_reference(
    metrics: ProfileMetrics, derived: DerivedMetrics
) -> dict[str, float | None]:
    return {
        "depth_cm": metrics.depth_cm,
        "clay_pct": round2(metrics.median_clay_pct),
        "ctc_cmolc_kg": derived.t,
        "v_percent": derived.v_percent,
        "ph": metrics.ph_surface,
        "om_pct": metrics.om_surface_pct,
    }


def _assemble(
    request: ClassificationRequest,
    validation: ValidationResult,
    scoring: ScoringResult,
    settings: EngineSettings,
) -> ClassificationResult:
    has_layers = bool(request.lab_layers)
    top = scoring.top if has_layers else None
    metrics = scoring.metrics

    if top is not None and top.score >= settings.min_primary_score:
        order, mode = top.order, top.mode
    else:
        order, mode = SoilOrder.INDETERMINADA, EngineMode.PROBABILISTIC

    missing_details = list(top.missing_critical) if top else []
    bt_without_v = (
        request.field.morph_diag.has_Bt is TriState.YES
        and metrics.horizon.v_percent is None
    )
    if bt_without_v and V_PERCENT_MISSING not in missing_details:
        missing_details.append(V_PERCENT_MISSING)
    missing_details += [VALIDATION_PREFIX + error for error in validation.errors]
    missing = [
        MissingItem(key=f"missing_{i}", detail=detail)
        for i, detail in enumerate(missing_details, start=1)
    ]

    derived = _derived_metrics(metrics)

    positives = [item.model_copy() for item in top.positives] if top else []
    if not positives:
        positives.append(
            EvidenceItem(key="positive_default", detail=NO_POSITIVE_EVIDENCE, score_delta=0)
        )

    alternatives = []
    if top is not None:
        alternatives = [
            Alternative(
                order=candidate.order,
                confidence=candidate.score,
                why_competes=candidate.top_message(PARTIAL_EVIDENCE),
            )
            for candidate in scoring.ranked[1 : 1 + settings.max_alternatives]
        ]

    profile = find_order_profile(order)
    reference_checks = (
        check_reference_ranges(profile, _observed_for_reference(metrics, derived))
        if profile is not None
        else []
    )

    confirmation = build_order_confirmation_checklist(order)

    return ClassificationResult(
        engine_version=settings.engine_version,
        result=ResultBlock(
            primary=PrimaryResult(
                order=order,
                confidence=top.score if top else 0,
                mode=mode,
                explanation_short=top.top_message(INSUFFICIENT_DATA)
                if top
                else INSUFFICIENT_DATA,
                suborder_hint=suggest_suborder(order, request.field, metrics),
            )
        ),
        alternatives=alternatives,
        audit=Audit(
            positive_evidence=positives,
            conflicts=[item.model_copy() for item in top.conflicts] if top else [],
            missing_critical=missing,
            derived_metrics=derived,
            reference_checks=reference_checks,
        ),
        agronomic_alerts=build_agronomic_alerts(request, derived),
        management_notes=build_management_notes(order, derived),
        next_steps=merge_next_steps(build_next_steps(missing), confirmation),
        checklist=ChecklistSummary(
            question_count=len(list_checklist_questions()),
            order_confirmation_focus=confirmation,
        ),
        reference=profile.summary() if profile is not None else None,
    )


def classify(
    request: ClassificationRequest | Mapping[str, Any],
    settings: EngineSettings | None = None,
) -> ClassificationOutcome:
    """Classify one soil profile into a SiBCS order.

    Malformed values never raise: they surface as validation errors and
    missing critical data, and classification still returns a complete
    (possibly Indeterminada) result.

    Args:
        request: ClassificationRequest or an equivalent JSON-like mapping
        settings: Engine settings (defaults to the loaded configuration)

    Returns:
        ClassificationOutcome with the validation report and the response
    """
    settings = settings or get_settings()
    request, schema_errors = _coerce_request(request)

    normalized = normalize_request(request)
    validation = validate_request(normalized, settings)
    if schema_errors:
        validation = ValidationResult(
            valid=False,
            errors=schema_errors + validation.errors,
            warnings=validation.warnings,
        )

    scoring = score_orders(normalized)
    response = _assemble(normalized, validation, scoring, settings)

    primary = response.result.primary
    logger.info(
        f"Classified profile as {primary.order.value} "
        f"(confidence={primary.confidence}, mode={primary.mode.value}, "
        f"valid={validation.valid})"
    )
    return ClassificationOutcome(validation=validation, response=response)


class ClassificationService:
    """Classify single profiles or batches with shared settings."""

    def __init__(self, settings: EngineSettings | None = None):
        self.settings = settings or get_settings()
        logger.info(
            f"Initialized ClassificationService (engine {self.settings.engine_version})"
        )

    def classify(
        self, request: ClassificationRequest | Mapping[str, Any]
    ) -> ClassificationOutcome:
        return classify(request, self.settings)

    def classify_batch(
        self, requests: Iterable[ClassificationRequest | Mapping[str, Any]]
    ) -> list[ClassificationOutcome]:
        """Classify a sequence of requests.

        A request that fails unexpectedly yields an Indeterminada outcome
        carrying the error, so one bad profile does not stop the batch.
        """
        items = list(requests)
        logger.info(f"Classifying batch of {len(items)} profiles")

        outcomes = []
        for i, request in enumerate(items):
            try:
                outcomes.append(self.classify(request))
            except Exception as e:
                logger.error(f"Error classifying profile {i + 1}: {e}")
                outcomes.append(self._failed_outcome(str(e)))

            if (i + 1) % 10 == 0:
                logger.info(f"Processed {i + 1}/{len(items)} profiles")

        logger.info(f"Completed classification of {len(items)} profiles")
        return outcomes

    def _failed_outcome(self, error: str) -> ClassificationOutcome:
        detail = f"Falha ao classificar: {error}"
        missing = [MissingItem(key="missing_1", detail=VALIDATION_PREFIX + detail)]
        return ClassificationOutcome(
            validation=ValidationResult(valid=False, errors=[detail]),
            response=ClassificationResult(
                engine_version=self.settings.engine_version,
                result=ResultBlock(
                    primary=PrimaryResult(explanation_short=INSUFFICIENT_DATA)
                ),
                audit=Audit(
                    positive_evidence=[
                        EvidenceItem(
                            key="positive_default",
                            detail=NO_POSITIVE_EVIDENCE,
                            score_delta=0,
                        )
                    ],
                    missing_critical=missing,
                ),
                next_steps=build_next_steps(missing),
            ),
        )


def build_snapshot(
    outcome: ClassificationOutcome, applied_at: datetime | str
) -> dict[str, Any]:
    """Subset of an outcome persisted for reporting.

    The timestamp is recorded as given; the engine never reads the clock.
    """
    response = outcome.response.model_dump(mode="json")
    return {
        "applied_at": applied_at.isoformat()
        if isinstance(applied_at, datetime)
        else applied_at,
        "response": {
            "result": {"primary": response["result"]["primary"]},
            "alternatives": response["alternatives"],
            "next_steps": response["next_steps"],
        },
    }
