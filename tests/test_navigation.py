"""Tests for the navigation controller.

This module tests:
- Strict and lenient policies on next
- Resources pass-through for TANF-only applications
- Clamping of next on the last step and back on the first step
- Submission, including references to removed household members
- Progress and step titles
"""

from decimal import Decimal

import pytest

from benefits_intake.config import NavigationConfig
from benefits_intake.exceptions import SubmissionError
from benefits_intake.models.enums import NavigationPolicy, ProgramType, StepId
from benefits_intake.models.steps import ProgramSelection
from benefits_intake.navigation import NavigationAction, NavigationController, is_pass_through
from benefits_intake.store import ApplicationStateStore
from benefits_intake.submission import DEMO_ACKNOWLEDGEMENT, LocalAcknowledgementSubmitter

from tests.conftest import CHILD_ID, SELF_ID


SNAP_SECTION = {"snap": {"head_of_household": SELF_ID, "heating_method": "gas"}}


@pytest.fixture
def store():
    return ApplicationStateStore()


@pytest.fixture
def controller(store):
    return NavigationController(store, NavigationConfig())


@pytest.fixture
def walk_to_review(controller, applicant_data, household_data, income_data, resources_data):
    """Advance a SNAP application to the review step with valid drafts."""

    def _walk(income=None):
        drafts = [
            {"programs": ["SNAP"]},
            applicant_data,
            household_data,
            income if income is not None else income_data,
            resources_data,
            SNAP_SECTION,
            {"has_representative": False},
        ]
        for draft in drafts:
            outcome = controller.next(draft)
            assert outcome.committed, outcome.errors
            assert not outcome.warnings
        assert controller.current_step_id == StepId.REVIEW
        return controller

    return _walk


class TestStrictPolicy:
    """Strict steps block on errors."""

    def test_invalid_draft_blocks(self, controller, store):
        outcome = controller.next({"programs": []})

        assert outcome.blocked
        assert not outcome.moved
        assert outcome.policy == NavigationPolicy.STRICT
        assert [e.message for e in outcome.errors] == ["Please select at least one program"]
        assert store.current_step == 1
        assert store.get_step(StepId.PROGRAM_SELECTION) == ProgramSelection()

    def test_valid_draft_commits_and_advances(self, controller, store):
        outcome = controller.next({"programs": ["SNAP", "SNAP"]})

        assert outcome.action == NavigationAction.NEXT
        assert outcome.committed
        assert outcome.to_step == 2
        assert store.get_step(StepId.PROGRAM_SELECTION).programs == [ProgramType.SNAP]

    def test_blocked_applicant_reports_all_errors(self, controller, store):
        store.set_current_step_index(2)

        outcome = controller.next({"name": {"first": "Jane"}})

        assert outcome.blocked
        assert "name.last" in [e.path for e in outcome.errors]
        assert "primary_phone" in [e.path for e in outcome.errors]
        assert store.get_step(StepId.APPLICANT_INFO) is None

    def test_without_draft_committed_data_is_validated(self, controller, store):
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"]})

        outcome = controller.next()

        assert outcome.moved


class TestLenientPolicy:
    """Lenient steps commit as entered and return warnings."""

    def test_invalid_draft_commits_with_warnings(self, controller, store):
        store.set_current_step_index(4)

        outcome = controller.next({"has_earned_income": True})

        assert outcome.moved
        assert outcome.committed
        assert outcome.policy == NavigationPolicy.LENIENT
        assert [e.rule for e in outcome.warnings] == ["earned_income_listed"]
        assert outcome.errors == []
        assert store.get_step(StepId.INCOME).has_earned_income is True

    def test_draft_that_does_not_type_check_is_kept(self, controller, store):
        store.set_current_step_index(4)

        outcome = controller.next({"daycare_expenses": True, "daycare_amount": "about 300"})

        assert outcome.committed
        assert [e.path for e in outcome.warnings] == ["daycare_amount"]
        assert store.get_step(StepId.INCOME).daycare_amount == "about 300"

    def test_lenient_commit_is_normalized(self, controller, store):
        """Sections for programs not applied for are dropped."""
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"], "tanf_no_snap": True})
        store.set_current_step_index(6)

        outcome = controller.next({"auxiliary_grants": {"living_situation": "rent"}})

        assert outcome.committed
        program_specific = store.get_step(StepId.PROGRAM_SPECIFIC)
        assert program_specific.auxiliary_grants is None
        assert program_specific.tanf is not None

    def test_tanf_application_has_no_snap_section(self, controller, store):
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"]})
        store.set_current_step_index(6)

        outcome = controller.next({"snap": {"heating_method": "gas"}})

        assert outcome.committed
        assert outcome.warnings == []
        program_specific = store.get_step(StepId.PROGRAM_SPECIFIC)
        assert program_specific.snap is None
        assert program_specific.tanf is not None

    def test_global_strict_override(self, store):
        controller = NavigationController(store, NavigationConfig(default_policy=NavigationPolicy.STRICT))
        store.set_current_step_index(4)

        outcome = controller.next({"has_earned_income": True})

        assert outcome.blocked
        assert store.current_step == 4
        assert store.get_step(StepId.INCOME) is None


class TestPassThrough:
    """Resources is skipped for TANF-only applications."""

    def test_tanf_only_skips_resources(self, controller, store):
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"]})
        store.set_current_step_index(5)

        outcome = controller.next({"lottery_winnings": True})

        assert outcome.passed_through
        assert outcome.to_step == 6
        assert outcome.errors == []
        assert store.get_step(StepId.RESOURCES) is None

    def test_tanf_with_other_program_asks_resources(self, controller, store):
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF", "SNAP"]})
        store.set_current_step_index(5)

        outcome = controller.next({})

        assert not outcome.passed_through
        assert outcome.committed

    def test_pass_through_only_applies_to_resources(self):
        selection = ProgramSelection(programs=[ProgramType.TANF])

        assert is_pass_through(StepId.RESOURCES, selection)
        assert not is_pass_through(StepId.INCOME, selection)
        assert not is_pass_through(StepId.RESOURCES, None)

    def test_back_through_pass_through_step(self, controller, store):
        """Back is never skipped; the resources step is shown again."""
        store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"]})
        store.set_current_step_index(6)

        outcome = controller.back()

        assert outcome.to_step == 5


class TestClamping:
    """Next and back never leave the step range."""

    def test_back_on_first_step(self, controller, store):
        outcome = controller.back()

        assert outcome.action == NavigationAction.BACK
        assert not outcome.moved
        assert store.current_step == 1

    def test_next_on_last_step(self, controller, store):
        store.set_current_step_index(8)

        outcome = controller.next({"signature": "Jane Doe"})

        assert not outcome.moved
        assert not outcome.committed
        assert store.get_step(StepId.REVIEW) is None

    def test_back_does_not_validate_or_commit(self, controller, store):
        store.set_current_step_index(3)

        outcome = controller.back()

        assert outcome.to_step == 2
        assert outcome.errors == []
        assert store.get_step(StepId.HOUSEHOLD) is None


class TestSubmit:
    """Tests for the final submit action."""

    def test_submit_outside_last_step(self, controller):
        outcome = controller.submit()

        assert not outcome.submitted
        assert outcome.errors_for(StepId.PROGRAM_SELECTION)[0].rule == "not_last_step"

    def test_successful_submission(self, walk_to_review, store, review_data):
        controller = walk_to_review()

        outcome = controller.submit(review_data)

        assert outcome.submitted
        assert outcome.error_count == 0
        assert outcome.receipt.message == DEMO_ACKNOWLEDGEMENT
        assert len(outcome.receipt.confirmation_id) == 10
        assert controller.submitter.submitted == [outcome.receipt]
        # Submission does not reset the application
        assert store.current_step == 8
        assert store.get_step(StepId.REVIEW).signature == "Jane Doe"

    def test_tanf_only_application_submits(
        self, controller, applicant_data, household_data, income_data, review_data
    ):
        """A TANF-only application is never asked for the SNAP section."""
        drafts = [
            {"programs": ["TANF"]},
            applicant_data,
            household_data,
            income_data,
            None,
            {"tanf": {"child_parent_info": [
                {"child_id": CHILD_ID, "parent_id": SELF_ID, "immunization_status": "up-to-date"},
            ]}},
            {"has_representative": False},
        ]
        for draft in drafts:
            outcome = controller.next(draft)
            assert outcome.moved
            assert not outcome.warnings

        outcome = controller.submit(review_data)

        assert outcome.submitted, outcome.errors
        assert controller.store.get_step(StepId.RESOURCES) is None
        assert controller.store.get_step(StepId.PROGRAM_SPECIFIC).snap is None

    def test_unsigned_review_blocks(self, walk_to_review):
        controller = walk_to_review()

        outcome = controller.submit({"truthfulness": True})

        assert not outcome.submitted
        assert set(outcome.errors) == {StepId.REVIEW}
        assert "signature" in [e.path for e in outcome.errors_for(StepId.REVIEW)]
        assert controller.submitter.submitted == []

    def test_removed_member_references_block_submission(self, walk_to_review, store, income_data, review_data):
        """Every record still pointing at a removed member is reported."""
        income_data["sources"].append({
            "id": "income-3",
            "person_id": CHILD_ID,
            "source_type": "Child Support",
            "amount": Decimal("150"),
            "frequency": "monthly",
        })
        income_data["sources"].append({
            "id": "income-4",
            "person_id": CHILD_ID,
            "source_type": "SSI",
            "amount": Decimal("300"),
            "frequency": "monthly",
        })
        controller = walk_to_review(income_data)
        household = store.get_step(StepId.HOUSEHOLD)
        household.members = [m for m in household.members if m.id != CHILD_ID]
        store.set_step(StepId.HOUSEHOLD, household)

        outcome = controller.submit(review_data)

        assert not outcome.submitted
        assert [e.path for e in outcome.errors_for(StepId.INCOME)] == [
            "sources.2.person_id",
            "sources.3.person_id",
        ]
        assert all(e.rule == "dangling_reference" for e in outcome.errors_for(StepId.INCOME))

    def test_revalidation_can_be_disabled(self, store, review_data):
        controller = NavigationController(store, NavigationConfig(revalidate_on_submit=False))
        store.set_step(StepId.INCOME, {"has_earned_income": True})
        store.set_current_step_index(8)

        outcome = controller.submit(review_data)

        assert outcome.submitted

    def test_lenient_warnings_block_submission(self, store, review_data):
        controller = NavigationController(store, NavigationConfig())
        store.set_step(StepId.INCOME, {"has_earned_income": True})
        store.set_current_step_index(8)

        outcome = controller.submit(review_data)

        assert not outcome.submitted
        assert [e.rule for e in outcome.errors_for(StepId.INCOME)] == ["earned_income_listed"]

    def test_submitter_failure(self, store, review_data):
        class RejectingSubmitter:
            def submit(self, state):
                raise SubmissionError("Backend unavailable")

        controller = NavigationController(
            store,
            NavigationConfig(revalidate_on_submit=False),
            submitter=RejectingSubmitter(),
        )
        store.set_current_step_index(8)

        outcome = controller.submit(review_data)

        assert not outcome.submitted
        assert outcome.failure == "Backend unavailable"
        assert outcome.receipt is None


class TestProgress:
    """Tests for progress and titles."""

    @pytest.mark.parametrize("step,percent", [(1, 13), (2, 25), (3, 38), (4, 50), (7, 88), (8, 100)])
    def test_progress_percent(self, controller, store, step, percent):
        store.set_current_step_index(step)

        assert controller.progress_percent == percent

    def test_step_titles(self, controller):
        assert controller.step_title() == "Program Selection & Orientation"
        assert controller.step_title(3) == "Household Composition"
        assert controller.step_title(StepId.REVIEW) == "Review & Submit"

    def test_last_step(self, controller, store):
        assert not controller.is_last_step

        store.set_current_step_index(8)

        assert controller.is_last_step
        assert controller.total_steps == 8

    def test_default_submitter(self, controller):
        assert isinstance(controller.submitter, LocalAcknowledgementSubmitter)
