"""Tests for the application state store."""

import pytest

from benefits_intake.exceptions import UnknownStepError
from benefits_intake.models.enums import ProgramType, StepId
from benefits_intake.models.steps import (
    ApplicationState,
    IncomeInfo,
    ProgramSelection,
    ResourcesInfo,
)
from benefits_intake.store import ApplicationStateStore


@pytest.fixture
def store():
    return ApplicationStateStore()


class TestInitialState:
    """Tests for a fresh store."""

    def test_starts_at_step_one(self, store):
        assert store.current_step == 1
        assert store.current_step_id == StepId.PROGRAM_SELECTION
        assert store.total_steps == 8

    def test_only_program_selection_is_populated(self, store):
        assert store.get_step(StepId.PROGRAM_SELECTION) == ProgramSelection()
        for step in list(StepId)[1:]:
            assert store.get_step(step) is None

    def test_get_step_or_default(self, store):
        assert store.get_step_or_default(StepId.INCOME) == IncomeInfo()

    def test_restored_state_is_copied(self):
        state = ApplicationState(current_step=3)

        store = ApplicationStateStore(state)
        state.current_step = 5

        assert store.current_step == 3


class TestSetStep:
    """Tests for committing step data."""

    def test_set_step_accepts_models(self, store):
        store.set_step(StepId.PROGRAM_SELECTION, ProgramSelection(programs=[ProgramType.SNAP]))

        assert store.get_step(StepId.PROGRAM_SELECTION).programs == [ProgramType.SNAP]

    def test_set_step_accepts_mappings(self, store, resources_data):
        store.set_step("resources", resources_data)

        resources = store.get_step(StepId.RESOURCES)
        assert isinstance(resources, ResourcesInfo)
        assert resources.assets[0].institution == "First Bank"

    def test_set_step_does_not_validate(self, store):
        """Invalid data is stored as given."""
        store.set_step(StepId.RESOURCES, {"lottery_winnings": True, "lottery_amount": "5"})

        assert store.get_step(StepId.RESOURCES).lottery_amount == 5

    def test_set_step_keeps_data_that_does_not_type_check(self, store):
        store.set_step(StepId.INCOME, {"has_earned_income": True, "daycare_amount": "unknown"})

        assert store.get_step(StepId.INCOME).daycare_amount == "unknown"

    def test_set_step_is_idempotent(self, store, resources_data):
        store.set_step(StepId.RESOURCES, resources_data)
        first = store.snapshot()

        store.set_step(StepId.RESOURCES, resources_data)

        assert store.snapshot() == first

    def test_clearing_program_selection_restores_empty_selection(self, store):
        store.set_step(StepId.PROGRAM_SELECTION, None)

        assert store.get_step(StepId.PROGRAM_SELECTION) == ProgramSelection()

    def test_unknown_step(self, store):
        with pytest.raises(UnknownStepError):
            store.set_step("demographics", {})

        with pytest.raises(UnknownStepError):
            store.get_step("demographics")


class TestIsolation:
    """Committed data cannot be changed through held references."""

    def test_mutating_input_after_commit(self, store):
        selection = ProgramSelection(programs=[ProgramType.SNAP])
        store.set_step(StepId.PROGRAM_SELECTION, selection)

        selection.programs.append(ProgramType.TANF)

        assert store.get_step(StepId.PROGRAM_SELECTION).programs == [ProgramType.SNAP]

    def test_mutating_returned_data(self, store):
        store.set_step(StepId.PROGRAM_SELECTION, ProgramSelection(programs=[ProgramType.SNAP]))

        store.get_step(StepId.PROGRAM_SELECTION).programs.clear()
        store.snapshot().program_selection.programs.clear()

        assert store.get_step(StepId.PROGRAM_SELECTION).programs == [ProgramType.SNAP]


class TestStepPointer:
    """Tests for the current step pointer."""

    def test_set_current_step_index(self, store):
        assert store.set_current_step_index(4) == 4
        assert store.current_step_id == StepId.RESOURCES

    @pytest.mark.parametrize("requested,applied", [(0, 1), (-3, 1), (9, 8), (100, 8)])
    def test_index_is_clamped(self, store, requested, applied):
        assert store.set_current_step_index(requested) == applied
        assert store.current_step == applied


class TestReset:
    """Tests for reset."""

    def test_reset_restores_initial_state(self, store, resources_data):
        store.set_step(StepId.PROGRAM_SELECTION, ProgramSelection(programs=[ProgramType.TANF]))
        store.set_step(StepId.RESOURCES, resources_data)
        store.set_current_step_index(6)

        store.reset()

        assert store.snapshot() == ApplicationState()
        assert store.current_step == 1
