"""Tests for the application session.

This module tests:
- Field bindings and draft updates
- The locked applicant relationship
- Household member management
- A complete walk through the wizard to submission
- Prefill results that arrive after the user moved on
- Reset
"""

import pytest

from benefits_intake.exceptions import IntakeError, LockedFieldError, UnknownStepError
from benefits_intake.models.enums import ProgramType, Relationship, StepId
from benefits_intake.models.steps import HouseholdMember
from benefits_intake.prefill import PrefillAddress, PrefillRecord, UploadedDocument
from benefits_intake.session import ApplicationSession

from tests.conftest import make_member


class RecordingProvider:
    """Returns the same record for every document."""

    name = "recording"

    def __init__(self, record):
        self.record = record
        self.on_extract = None

    async def extract(self, document):
        if self.on_extract is not None:
            self.on_extract()
        return self.record


@pytest.fixture
def session(config):
    return ApplicationSession(config)


def fill(session, step, data):
    """Write every top-level field of ``data`` into a step draft."""
    for key, value in data.items():
        session.update_draft(step, key, value)


class TestDrafts:
    """Tests for drafts and field bindings."""

    def test_binding_reads_and_writes(self, session):
        binding = session.binding(StepId.APPLICANT_INFO, "name.first")

        assert binding.value is None

        errors = binding.on_change("Jane")

        assert errors == []
        assert session.draft(StepId.APPLICANT_INFO)["name"]["first"] == "Jane"
        assert session.binding("applicant_info", "name.first").value == "Jane"

    def test_on_change_returns_errors_for_the_field(self, session):
        binding = session.binding(StepId.APPLICANT_INFO, "zip")

        assert [e.message for e in binding.on_change("123")] == ["Invalid ZIP code"]
        assert binding.on_change("23219") == []

    def test_field_errors_include_nested_paths(self, session):
        errors = session.field_errors(StepId.APPLICANT_INFO, "name")

        assert [e.path for e in errors] == ["name.first", "name.last"]

    def test_bad_path(self, session):
        with pytest.raises(IntakeError):
            session.update_draft(StepId.HOUSEHOLD, "members.5.gender", "Male")

    def test_unknown_step(self, session):
        with pytest.raises(UnknownStepError):
            session.draft("demographics")

    def test_draft_survives_navigation(self, session):
        session.update_draft(StepId.PROGRAM_SELECTION, "programs", ["SNAP"])
        session.next()

        session.back()

        assert session.draft()["programs"] == [ProgramType.SNAP]

    def test_draft_starts_from_committed_data(self, session, applicant_data):
        session.store.set_step(StepId.APPLICANT_INFO, applicant_data)

        assert session.draft(StepId.APPLICANT_INFO)["city"] == "Richmond"


class TestHousehold:
    """Tests for the household draft."""

    def test_household_starts_with_applicant(self, session, applicant_data):
        session.store.set_step(StepId.APPLICANT_INFO, applicant_data)

        members = session.draft(StepId.HOUSEHOLD)["members"]

        assert len(members) == 1
        assert members[0]["relationship"] == Relationship.SELF
        assert members[0]["name"]["first"] == "Jane"

    def test_applicant_relationship_is_locked(self, session):
        with pytest.raises(LockedFieldError):
            session.update_draft(StepId.HOUSEHOLD, "members.0.relationship", Relationship.SPOUSE)

    def test_applicant_relationship_can_be_rewritten_unchanged(self, session):
        session.update_draft(StepId.HOUSEHOLD, "members.0.relationship", "Self (Applicant)")

    def test_applicant_relationship_locked_for_whole_member_writes(self, session):
        applicant = dict(session.draft(StepId.HOUSEHOLD)["members"][0])
        applicant["relationship"] = Relationship.SPOUSE

        with pytest.raises(LockedFieldError):
            session.update_draft(StepId.HOUSEHOLD, "members.0", applicant)
        with pytest.raises(LockedFieldError):
            session.update_draft(StepId.HOUSEHOLD, "members", [applicant])

        assert session.draft(StepId.HOUSEHOLD)["members"][0]["relationship"] == Relationship.SELF

    def test_applicant_cannot_be_dropped_from_the_list(self, session):
        with pytest.raises(LockedFieldError):
            session.update_draft(
                StepId.HOUSEHOLD, "members", [make_member("member-other", Relationship.SPOUSE, "John", "Doe")]
            )

    def test_whole_list_write_keeping_the_applicant(self, session):
        applicant = session.draft(StepId.HOUSEHOLD)["members"][0]
        child = make_member("member-other", Relationship.CHILD, "Sam", "Doe")

        session.update_draft(StepId.HOUSEHOLD, "members", [applicant, child])

        assert len(session.draft(StepId.HOUSEHOLD)["members"]) == 2


    def test_other_relationships_are_editable(self, session):
        member_id = session.add_household_member()

        session.update_draft(StepId.HOUSEHOLD, "members.1.relationship", Relationship.CHILD)

        assert session.household_draft().member(member_id).relationship == Relationship.CHILD

    def test_add_and_remove_members(self, session):
        spouse_id = session.add_household_member(HouseholdMember(relationship=Relationship.SPOUSE))
        child_id = session.add_household_member()

        session.remove_household_member(spouse_id)

        ids = [m["id"] for m in session.draft(StepId.HOUSEHOLD)["members"]]
        assert len(ids) == 2
        assert child_id in ids
        assert spouse_id not in ids

    def test_applicant_cannot_be_removed(self, session):
        applicant_id = session.draft(StepId.HOUSEHOLD)["members"][0]["id"]

        with pytest.raises(LockedFieldError):
            session.remove_household_member(applicant_id)

    def test_members_that_do_not_type_check_are_kept(self, session):
        session.update_draft(StepId.HOUSEHOLD, "members.0.date_of_birth", "sometime")

        session.add_household_member()

        assert session.draft(StepId.HOUSEHOLD)["members"][0]["date_of_birth"] == "sometime"


class TestWalkthrough:
    """A complete application from program selection to submission."""

    def test_snap_application(self, session, applicant_data, income_data, resources_data, review_data):
        session.binding(StepId.PROGRAM_SELECTION, "programs").on_change(["SNAP"])
        assert session.next().moved
        assert session.progress_percent == 25

        fill(session, StepId.APPLICANT_INFO, applicant_data)
        assert session.next().committed

        household = session.draft(StepId.HOUSEHOLD)
        self_id = household["members"][0]["id"]
        fill(session, StepId.HOUSEHOLD, {
            "members": [
                make_member(self_id, Relationship.SELF, "Jane", "Doe", applying_for_benefits=True),
                make_member("member-spouse", Relationship.SPOUSE, "John", "Doe"),
            ],
        })
        assert session.step_title == "Household Composition"
        assert session.next().committed
        assert session.derived.person_ids == [self_id, "member-spouse"]

        income_data["sources"][0]["person_id"] = self_id
        fill(session, StepId.INCOME, income_data)
        assert session.next().warnings == []

        resources_data["assets"][0]["owner_ids"] = [self_id]
        fill(session, StepId.RESOURCES, resources_data)
        assert session.next().warnings == []

        fill(session, StepId.PROGRAM_SPECIFIC, {
            "snap": {"head_of_household": self_id, "heating_method": "electric"},
        })
        assert session.next().warnings == []
        assert session.next().warnings == []
        assert session.current_step_id == StepId.REVIEW

        summary = session.review_summary()
        assert summary.applicant_name == "Jane Doe"
        assert summary.household_size == 2

        fill(session, StepId.REVIEW, review_data)
        outcome = session.submit()

        assert outcome.submitted
        assert outcome.receipt.confirmation_id
        assert session.progress_percent == 100

    def test_strict_step_blocks_and_reports(self, session):
        session.update_draft(StepId.PROGRAM_SELECTION, "programs", ["SNAP"])
        session.next()

        outcome = session.next()

        assert outcome.blocked
        assert session.current_step_id == StepId.APPLICANT_INFO

    def test_resources_passed_through_for_tanf(self, session):
        session.store.set_step(StepId.PROGRAM_SELECTION, {"programs": ["TANF"]})
        session.store.set_current_step_index(5)

        outcome = session.next()

        assert outcome.passed_through
        assert session.current_step_id == StepId.PROGRAM_SPECIFIC


class TestPrefill:
    """Tests for document prefill through the session."""

    @pytest.fixture
    def record(self):
        return PrefillRecord(
            first_name="Jane",
            last_name="Doe",
            ssn="123456789",
            address=PrefillAddress(street="123 Main St", city="Richmond", zip="23219"),
        )

    def at_step(self, config, record, step):
        session = ApplicationSession(config, prefill_provider=RecordingProvider(record))
        session.store.set_current_step_index(step.number)
        return session

    @pytest.mark.asyncio
    async def test_prefill_applicant(self, config, record):
        session = self.at_step(config, record, StepId.APPLICANT_INFO)

        applied = await session.prefill([UploadedDocument(name="license.pdf", content=b"1")])

        draft = session.draft()
        assert applied == record
        assert draft["name"]["first"] == "Jane"
        assert draft["street_address"] == "123 Main St"
        assert draft["zip"] == "23219"
        assert "ssn" not in draft

    @pytest.mark.asyncio
    async def test_prefill_household_member(self, config, record):
        session = self.at_step(config, record, StepId.HOUSEHOLD)
        member_id = session.add_household_member()

        await session.prefill([UploadedDocument(name="card.pdf", content=b"1")], member_id=member_id)

        members = session.draft()["members"]
        assert members[1]["ssn"] == "123-45-6789"
        assert members[1]["name"]["last"] == "Doe"
        assert members[0]["ssn"] is None

    @pytest.mark.asyncio
    async def test_member_removed_during_extraction(self, config, record):
        """The record is dropped when its member was removed while reading."""
        provider = RecordingProvider(record)
        session = ApplicationSession(config, prefill_provider=provider)
        session.store.set_current_step_index(StepId.HOUSEHOLD.number)
        member_id = session.add_household_member()
        provider.on_extract = lambda: session.remove_household_member(member_id)

        applied = await session.prefill([UploadedDocument(name="card.pdf", content=b"1")], member_id=member_id)

        assert applied is None
        assert len(session.draft()["members"]) == 1

    def test_result_after_navigation_is_discarded(self, config, record):
        session = self.at_step(config, record, StepId.APPLICANT_INFO)
        ticket = session.issue_prefill_ticket()

        session.back()
        session.store.set_current_step_index(StepId.APPLICANT_INFO.number)

        assert session.apply_prefill(ticket, record) is False
        assert session.draft(StepId.APPLICANT_INFO)["name"]["first"] is None

    def test_result_after_reset_is_discarded(self, config, record):
        session = self.at_step(config, record, StepId.APPLICANT_INFO)
        ticket = session.issue_prefill_ticket()

        session.reset()
        session.store.set_current_step_index(StepId.APPLICANT_INFO.number)

        assert session.apply_prefill(ticket, record) is False

    def test_user_edits_are_kept(self, config, record):
        session = self.at_step(config, record, StepId.APPLICANT_INFO)
        ticket = session.issue_prefill_ticket()

        session.update_draft(StepId.APPLICANT_INFO, "name.first", "Janet")

        assert session.apply_prefill(ticket, record) is True
        assert session.draft()["name"]["first"] == "Janet"
        assert session.draft()["name"]["last"] == "Doe"

    def test_prefill_not_available_on_income(self, config, record):
        session = self.at_step(config, record, StepId.INCOME)

        with pytest.raises(UnknownStepError):
            session.issue_prefill_ticket()

    @pytest.mark.asyncio
    async def test_prefill_on_income_is_ignored(self, config, record):
        session = self.at_step(config, record, StepId.INCOME)

        assert await session.prefill([UploadedDocument(name="a.pdf", content=b"1")]) is None

    @pytest.mark.asyncio
    async def test_empty_result_changes_nothing(self, config):
        session = self.at_step(config, PrefillRecord(), StepId.APPLICANT_INFO)
        before = session.draft()
        snapshot = {**before, "name": dict(before["name"])}

        assert await session.prefill([UploadedDocument(name="a.pdf", content=b"1")]) is None
        assert session.draft() == snapshot


class TestReset:
    """Tests for starting over."""

    def test_reset(self, session):
        session.update_draft(StepId.PROGRAM_SELECTION, "programs", ["SNAP"])
        session.next()
        epoch = session.epoch

        session.reset()

        assert session.current_step == 1
        assert session.epoch == epoch + 1
        assert session.draft()["programs"] == []
        assert session.store.get_step(StepId.PROGRAM_SELECTION).programs == []

    def test_epoch_changes_only_when_moving(self, session):
        session.back()
        assert session.epoch == 0

        session.update_draft(StepId.PROGRAM_SELECTION, "programs", ["SNAP"])
        session.next()
        assert session.epoch == 1
