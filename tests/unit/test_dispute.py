"""
Unit tests for dispute timelines and the DRP/ITAT workflow engine.
"""
from datetime import date, datetime, timedelta

import pytest

from tp_compliance.engines.dispute_timelines import (
    DisputeStage,
    FormType,
    calculate_appeal_fee,
    calculate_deadline,
    check_condonation,
    days_between,
    drp_timeline,
    filing_deadline,
    is_within_time_limit,
    next_stage,
    parse_stage,
    required_form,
)
from tp_compliance.engines.dispute_workflow import (
    REQUIRED_DOCUMENTS,
    DisputeWorkflowEngine,
    DraftAssessmentOrder,
    DRPObjection,
    TaxpayerDetails,
    TPOOrder,
    TransactionAdjustment,
    alert_severity,
)
from tp_compliance.errors import ValidationError


@pytest.fixture
def taxpayer():
    return TaxpayerDetails(name="Acme India Pvt Ltd", pan="AAACA1234A", address="Mumbai")


@pytest.fixture
def tpo_order(taxpayer):
    return TPOOrder(
        order_number="TPO/2024/001",
        order_date=date(2023, 12, 20),
        assessment_year="2024-25",
        primary_adjustment=5_000_000,
        taxpayer=taxpayer,
        transaction_adjustments=[
            TransactionAdjustment(
                transaction_type="Provision of software services",
                reported_value=20_000_000,
                alp_determined=25_000_000,
                adjustment_amount=5_000_000,
                related_party="Acme Inc",
            )
        ],
    )


@pytest.fixture
def draft_order():
    return DraftAssessmentOrder(
        order_number="DAO/2024/001",
        order_date=date(2024, 1, 20),
        assessment_year="2024-25",
        tpo_order_reference="TPO/2024/001",
        tp_adjustment=5_000_000,
    )


@pytest.fixture
def objections():
    return [
        DRPObjection(
            objection_number=1,
            issue_category="comparables",
            brief_description="Functionally dissimilar comparables were included",
            detailed_objection="Companies with significant intangibles were retained.",
            relief_sought=3_000_000,
            legal_basis=["Rule 10B(2)"],
        ),
        DRPObjection(
            objection_number=2,
            issue_category="adjustments",
            brief_description="Working capital adjustment was denied",
            detailed_objection="Rule 10B(3) requires reasonably accurate adjustments.",
            relief_sought=2_000_000,
        ),
    ]


class TestTimelines:
    """Calendar-day deadlines and reference lookups."""

    @pytest.mark.parametrize(
        "stage,expected",
        [
            (DisputeStage.DRP_FILING, date(2024, 2, 14)),
            (DisputeStage.CIT_APPEALS, date(2024, 2, 14)),
            (DisputeStage.ITAT_APPEAL, date(2024, 3, 15)),
            (DisputeStage.HIGH_COURT, date(2024, 5, 14)),
            (DisputeStage.SUPREME_COURT, date(2024, 4, 14)),
        ],
    )
    def test_stage_deadlines(self, stage, expected):
        assert calculate_deadline(date(2024, 1, 15), stage) == expected

    def test_explicit_day_count(self):
        assert calculate_deadline(date(2024, 1, 15), 7) == date(2024, 1, 22)

    def test_stage_without_window(self):
        with pytest.raises(ValidationError, match="No filing deadline"):
            calculate_deadline(date(2024, 1, 15), DisputeStage.TPO_ORDER)

        assert filing_deadline("tpo_order", date(2024, 1, 15)) is None
        assert filing_deadline("itat_appeal", date(2024, 1, 15)) == date(2024, 3, 15)

    def test_unknown_stage(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_stage("tribunal")

        assert exc_info.value.field == "stage"

    def test_days_between_rounds_part_days_up(self):
        assert days_between(date(2024, 1, 1), date(2024, 1, 31)) == 30
        assert days_between(datetime(2024, 1, 1), datetime(2024, 1, 2, 1)) == 2

    def test_time_limit_check(self):
        check = is_within_time_limit(date(2024, 1, 1), date(2024, 1, 21), 30)

        assert check.is_valid is True
        assert check.days_used == 20
        assert check.days_remaining == 10

        late = is_within_time_limit(date(2024, 1, 1), date(2024, 2, 5), 30)
        assert late.is_valid is False
        assert late.days_remaining == 0

    @pytest.mark.parametrize(
        "delay,eligible,grounds",
        [
            (30, True, "normal"),
            (31, True, "strong"),
            (180, True, "strong"),
            (181, True, "exceptional"),
            (365, True, "exceptional"),
            (366, False, "exceptional"),
        ],
    )
    def test_condonation_bands(self, delay, eligible, grounds):
        check = check_condonation(delay)

        assert check.eligible is eligible
        assert check.grounds_required == grounds

    @pytest.mark.parametrize(
        "amount,forum,fee",
        [
            (100_000, "itat", 500),
            (150_000, "itat", 1000),
            (250_000, "itat", 1500),
            (100_000, "cit_a", 250),
            (5_000_000, "cit_a", 1000),
        ],
    )
    def test_appeal_fee(self, amount, forum, fee):
        assert calculate_appeal_fee(amount, forum) == fee

    def test_appeal_fee_unknown_forum(self):
        with pytest.raises(ValidationError):
            calculate_appeal_fee(100, "high_court")

    def test_drp_timeline(self):
        dates = drp_timeline(date(2024, 2, 1))

        assert dates["expected_hearing"] == date(2024, 5, 1)
        assert dates["direction_deadline"] == date(2024, 2, 1) + timedelta(days=270)
        assert dates["final_assessment"] == dates["direction_deadline"] + timedelta(days=30)

    def test_stage_progression(self):
        assert next_stage("final_assessment") == DisputeStage.ITAT_APPEAL
        assert next_stage(DisputeStage.SUPREME_COURT) is None
        assert required_form("itat_appeal") == FormType.FORM_36
        assert required_form(DisputeStage.DRP_FILING) == FormType.DRP_OBJECTION
        assert required_form("high_court") is None

    @pytest.mark.parametrize("days,severity", [(0, "critical"), (30, "critical"), (31, "warning"), (90, "warning"), (91, "info")])
    def test_alert_severity(self, days, severity):
        assert alert_severity(days) == severity


class TestDRPWorkflow:
    """Eligibility gates, application building and validation."""

    def test_eligible_within_window(self, tpo_order, draft_order):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))

        result = engine.validate_eligibility(tpo_order, draft_order)

        assert result.is_eligible is True
        assert result.ineligibility_reasons == []
        assert "9 days remaining" in result.eligibility_reasons[0]

    def test_late_filing_closes_route(self, tpo_order, draft_order):
        engine = DisputeWorkflowEngine(current_date=date(2024, 3, 1))

        result = engine.validate_eligibility(tpo_order, draft_order)

        assert result.is_eligible is False
        assert result.ineligibility_reasons == ["Filing deadline exceeded by 11 days"]
        assert "condonation" in result.recommended_path

    def test_every_gate_must_pass(self, tpo_order, draft_order):
        """Each failing gate contributes its own reason."""
        tpo_order.primary_adjustment = 0
        draft_order.tpo_order_reference = "TPO/2024/999"
        draft_order.final_assessment_passed = True
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))

        result = engine.validate_eligibility(tpo_order, draft_order)

        assert result.is_eligible is False
        assert len(result.ineligibility_reasons) == 3
        assert "No transfer pricing adjustment in TPO order" in result.ineligibility_reasons

    def test_create_application(self, tpo_order, draft_order, objections):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))

        app = engine.create_drp_application(tpo_order, draft_order, objections)

        assert app.application_id.startswith("DRP/2024-25/")
        assert app.relief_claimed == 5_000_000
        assert len(app.grounds_of_objection) == 4
        assert app.grounds_of_objection[1].endswith("Rs. 50,00,000 without proper appreciation of facts.")
        assert app.grounds_of_objection[2] == "3. Functionally dissimilar comparables were included"
        assert app.supporting_documents == REQUIRED_DOCUMENTS + ["Rule 10B(2)"]
        assert app.timeline.direction_deadline == date(2024, 2, 10) + timedelta(days=270)

    def test_validate_application(self, tpo_order, draft_order, objections):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))
        app = engine.create_drp_application(tpo_order, draft_order, objections)

        assert engine.validate_drp_application(app).is_valid is True

        app.objections = []
        app.filing_date = date(2024, 3, 1)
        validation = engine.validate_drp_application(app)
        assert validation.is_valid is False
        assert {e.code for e in validation.errors} == {"DEADLINE_EXCEEDED", "NO_OBJECTIONS"}

    def test_progress_tracking(self, tpo_order, draft_order, objections):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))
        app = engine.create_drp_application(tpo_order, draft_order, objections)
        app.timeline.first_hearing_date = date(2024, 2, 20)

        progress = engine.track_drp_progress(app)

        assert progress.current_stage == DisputeStage.DRP_HEARING
        assert progress.upcoming_deadlines[0].days_remaining == 270
        assert progress.upcoming_deadlines[0].severity == "info"
        assert progress.pending_actions[0].deadline == date(2024, 2, 17)
        assert progress.pending_actions[0].priority == "high"

    def test_no_pending_action_far_from_hearing(self, tpo_order, draft_order, objections):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 10))
        app = engine.create_drp_application(tpo_order, draft_order, objections)
        app.timeline.first_hearing_date = date(2024, 4, 1)

        assert engine.track_drp_progress(app).pending_actions == []


class TestITATWorkflow:
    """Appeals, grounds and stay of demand."""

    def test_grounds_include_transaction_ground(self, tpo_order):
        grounds = DisputeWorkflowEngine().prepare_grounds_of_appeal(tpo_order)

        assert len(grounds.general_grounds) == 3
        assert len(grounds.specific_grounds) == 14
        last = grounds.specific_grounds[-1]
        assert last.ground_number == 14
        assert last.category == "Transaction-Specific"
        assert "Rs. 50,00,000" in last.ground
        assert last.sub_grounds[1] == "The ALP determined at Rs. 2,50,00,000 is incorrect"
        assert "Rs. 50,00,000 be deleted" in grounds.relief_prayer

    def test_create_appeal(self, tpo_order, taxpayer):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 15))
        grounds = engine.prepare_grounds_of_appeal(tpo_order)

        appeal = engine.create_itat_appeal("AO/2024/01", date(2024, 1, 1), taxpayer, "2024-25", grounds, 5_000_000)

        assert appeal.appeal_number.startswith("ITAT/2024-25/")
        assert appeal.fee == 1500
        assert appeal.grounds_of_appeal[0] == "1. The order passed is bad in law and against the principles of natural justice"
        assert "   14.1 The reported price of Rs. 2,00,00,000 was at arm's length" in appeal.grounds_of_appeal
        assert appeal.timeline.cross_objection_deadline == date(2024, 3, 16)
        assert engine.validate_itat_appeal(appeal).is_valid is True

    def test_late_appeal_within_condonation_warns(self, tpo_order, taxpayer):
        engine = DisputeWorkflowEngine(current_date=date(2024, 4, 1))
        grounds = engine.prepare_grounds_of_appeal(tpo_order)
        appeal = engine.create_itat_appeal("AO/2024/01", date(2024, 1, 1), taxpayer, "2024-25", grounds, 5_000_000)

        validation = engine.validate_itat_appeal(appeal)

        assert validation.is_valid is True
        assert validation.warnings[0].message == "Filing delayed by 31 days"
        assert "strong grounds" in validation.warnings[0].recommendation

    def test_appeal_beyond_condonation_fails(self, tpo_order, taxpayer):
        engine = DisputeWorkflowEngine(current_date=date(2024, 4, 1))
        grounds = engine.prepare_grounds_of_appeal(tpo_order)
        appeal = engine.create_itat_appeal("AO/2022/01", date(2022, 1, 1), taxpayer, "2022-23", grounds, 5_000_000)

        validation = engine.validate_itat_appeal(appeal)

        assert validation.is_valid is False
        assert validation.errors[0].code == "DEADLINE_NOT_CONDONABLE"

    def test_stay_raises_offer_to_minimum(self, tpo_order, taxpayer):
        engine = DisputeWorkflowEngine(current_date=date(2024, 2, 15))
        grounds = engine.prepare_grounds_of_appeal(tpo_order)
        appeal = engine.create_itat_appeal("AO/2024/01", date(2024, 1, 1), taxpayer, "2024-25", grounds, 5_000_000)

        stay = engine.create_stay_application(appeal, 1_000_000, 100_000)

        assert stay.minimum_payment == pytest.approx(200_000)
        assert stay.payment_offered == pytest.approx(200_000)
        assert appeal.stay_application is stay
