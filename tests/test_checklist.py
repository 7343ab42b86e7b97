"""Tests for the field checklist and next-step construction."""

import pytest

from sibcs_classifier.checklist import (
    NEXT_STEP_WHY,
    AnswerType,
    build_next_steps,
    build_order_confirmation_checklist,
    is_lab_request,
    list_checklist_questions,
    merge_next_steps,
    questions_for_order,
)
from sibcs_classifier.models import (
    ExpectedImpact,
    FieldObservations,
    MissingItem,
    NextStep,
    SoilOrder,
    StepAction,
)


class TestQuestionBank:
    """Test the checklist question bank."""

    def test_question_count_and_ids(self):
        questions = list_checklist_questions()
        ids = [q.id for q in questions]

        assert len(questions) == 17
        assert len(set(ids)) == 17
        assert ids[0] == "q1_histic_thickness"

    def test_field_keys_exist(self):
        """Every question maps to a field observation attribute."""
        field = FieldObservations()
        for question in list_checklist_questions():
            target = field
            for part in question.field_key.split("."):
                assert hasattr(target, part), question.field_key
                target = getattr(target, part)

    def test_answer_types(self):
        questions = {q.id: q for q in list_checklist_questions()}

        assert questions["q1_histic_thickness"].answer_type is AnswerType.NUMBER_CM
        assert questions["q2_water_saturation"].answer_type is AnswerType.SATURATION

    def test_questions_for_order(self):
        ids = [q.id for q in questions_for_order(SoilOrder.ORGANOSSOLOS)]

        assert "q1_histic_thickness" in ids
        assert "q2_water_saturation" in ids
        assert "q5_plinthite" not in ids


class TestOrderConfirmation:
    """Test per-order confirmation steps."""

    def test_bt_orders_share_steps(self):
        argissolos = build_order_confirmation_checklist(SoilOrder.ARGISSOLOS)

        assert argissolos == build_order_confirmation_checklist(SoilOrder.LUVISSOLOS)
        assert argissolos[0].action is StepAction.LAB_TEST
        assert argissolos[0].expected_impact is ExpectedImpact.RESOLVE_CONFLICT

    def test_espodossolos(self):
        steps = build_order_confirmation_checklist(SoilOrder.ESPODOSSOLOS)

        assert steps[0].action is StepAction.FIELD_CHECK
        assert "espódico" in steps[0].what

    @pytest.mark.parametrize(
        "order", [SoilOrder.CAMBISSOLOS, SoilOrder.GLEISSOLOS, SoilOrder.INDETERMINADA]
    )
    def test_orders_without_steps(self, order):
        assert build_order_confirmation_checklist(order) == []


class TestNextSteps:
    """Test conversion of missing data into next steps."""

    @pytest.mark.parametrize(
        "text,expected",
        [
            ("Informar argila na camada superficial.", True),
            ("Calcular V% na camada Bt.", True),
            ("Informar K trocável.", True),
            ("Medir pH em água.", True),
            ("Informar Ca, Mg e H+Al.", True),
            ("Confirmar matriz glei em campo.", False),
            ("Confirmar horizonte Bt em morfologia.", False),
            ("Informar espessura da camada orgânica.", False),
        ],
    )
    def test_is_lab_request(self, text, expected):
        assert is_lab_request(text) is expected

    def test_build_next_steps(self):
        steps = build_next_steps(
            [
                MissingItem(key="missing_1", detail="Confirmar matriz glei em campo."),
                MissingItem(key="missing_2", detail="Informar argila das camadas."),
            ]
        )

        assert [s.action for s in steps] == [StepAction.FIELD_CHECK, StepAction.LAB_TEST]
        assert all(s.why == NEXT_STEP_WHY for s in steps)
        assert all(s.expected_impact is ExpectedImpact.RAISE_CONFIDENCE for s in steps)

    def test_merge_deduplicates(self):
        first = NextStep(action=StepAction.FIELD_CHECK, what="Confirmar Bt.", why="a")
        duplicate = NextStep(action=StepAction.FIELD_CHECK, what=" confirmar bt. ", why="b")
        other_action = NextStep(action=StepAction.LAB_TEST, what="Confirmar Bt.", why="c")

        merged = merge_next_steps([first], [duplicate, other_action])

        assert merged == [first, other_action]
