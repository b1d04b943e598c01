"""Tests for the chip activation state machine."""

import pytest

from fplsquad.errors import NotFoundError, StateConflictError
from fplsquad.schemas.fpl_rules import ChipType
from fplsquad.schemas.squad import ChipRegistry, SnapshotType
from fplsquad.season.roster import build_roster
from fplsquad.season.state_machine import (
    ChipPhase,
    activate_chip,
    can_transition,
    cancel_chip,
    detect_phase,
)

from tests.conftest import BANK, CAPTAIN_ID, SQUAD_IDS, make_picks


@pytest.fixture
def roster(feed_players):
    return build_roster("alice", 10, make_picks(SQUAD_IDS), feed_players, BANK)


@pytest.fixture
def registry():
    return ChipRegistry.fresh("alice")


# ---------------------------------------------------------------------------
# Transition table
# ---------------------------------------------------------------------------

class TestCanTransition:
    def test_idle_to_activated(self):
        assert can_transition(ChipPhase.IDLE, ChipPhase.ACTIVATED) is True

    def test_activated_to_consumed(self):
        assert can_transition(ChipPhase.ACTIVATED, ChipPhase.CONSUMED) is True

    def test_activated_to_cancelled(self):
        assert can_transition(ChipPhase.ACTIVATED, ChipPhase.CANCELLED) is True

    def test_cancelled_back_to_idle(self):
        assert can_transition(ChipPhase.CANCELLED, ChipPhase.IDLE) is True

    def test_idle_cannot_cancel(self):
        assert can_transition(ChipPhase.IDLE, ChipPhase.CANCELLED) is False

    def test_consumed_is_terminal(self):
        for phase in ChipPhase:
            assert can_transition(ChipPhase.CONSUMED, phase) is False

    def test_self_transition_invalid(self):
        for phase in ChipPhase:
            assert can_transition(phase, phase) is False

    def test_detect_phase(self, roster):
        assert detect_phase(roster) is ChipPhase.IDLE
        roster.active_chip = ChipType.BENCH_BOOST
        assert detect_phase(roster) is ChipPhase.ACTIVATED


# ---------------------------------------------------------------------------
# Activation
# ---------------------------------------------------------------------------

class TestActivate:
    def test_wrong_gameweek(self, roster, registry):
        with pytest.raises(StateConflictError):
            activate_chip(roster, registry, "bench_boost", 11)

    def test_chip_already_active(self, roster, registry):
        roster.active_chip = ChipType.BENCH_BOOST
        with pytest.raises(StateConflictError) as exc_info:
            activate_chip(roster, registry, "wildcard", 10)
        assert exc_info.value.details["active_chip"] == "bench_boost"

    def test_inputs_untouched(self, roster, registry):
        activation = activate_chip(roster, registry, "bench_boost", 10)
        assert roster.active_chip is None
        assert registry.instances["bench_boost_1"].available is True
        assert activation.registry.instances["bench_boost_1"].used_in_gameweek == 10

    def test_wildcard_zeroes_counters(self, roster, registry):
        roster.transfers_made_this_week = 2
        roster.points_deducted = 4
        activation = activate_chip(roster, registry, "wildcard_1", 10)
        assert activation.roster.active_chip is ChipType.WILDCARD
        assert activation.roster.transfers_made_this_week == 0
        assert activation.roster.points_deducted == 0
        assert activation.pre_chip is None

    def test_triple_captain_boosts_captain(self, roster, registry):
        activation = activate_chip(roster, registry, "triple_captain", 10)
        assert activation.roster.find_player(CAPTAIN_ID).multiplier == 3

    def test_free_hit_writes_pre_chip_snapshot(self, roster, registry):
        activation = activate_chip(roster, registry, "free_hit", 10)
        assert activation.pre_chip is not None
        assert activation.pre_chip.snapshot_type is SnapshotType.PRE_CHIP
        assert activation.pre_chip.active_chip is None
        assert activation.pre_chip.player_ids == roster.player_ids

    def test_free_hit_consecutive_gameweek(self, roster, registry):
        with pytest.raises(StateConflictError) as exc_info:
            activate_chip(roster, registry, "free_hit", 10, last_free_hit_gameweek=9)
        assert exc_info.value.details["last_used"] == 9

    def test_free_hit_after_gap(self, roster, registry):
        activation = activate_chip(roster, registry, "free_hit", 10, last_free_hit_gameweek=8)
        assert activation.roster.active_chip is ChipType.FREE_HIT

    def test_consumed_instance(self, roster, registry):
        registry.consume("wildcard_1", 4)
        with pytest.raises(StateConflictError):
            activate_chip(roster, registry, "wildcard_1", 10)

    def test_instance_out_of_window(self, roster, registry):
        with pytest.raises(StateConflictError):
            activate_chip(roster, registry, "wildcard_2", 10)


# ---------------------------------------------------------------------------
# Cancellation
# ---------------------------------------------------------------------------

class TestCancel:
    def test_no_active_chip(self, roster, registry):
        with pytest.raises(StateConflictError):
            cancel_chip(roster, registry)

    @pytest.mark.parametrize("chip", ["wildcard", "free_hit"])
    def test_not_cancellable(self, roster, registry, chip):
        activation = activate_chip(roster, registry, chip, 10)
        with pytest.raises(StateConflictError):
            cancel_chip(activation.roster, activation.registry)

    def test_triple_captain_reverts(self, roster, registry):
        activation = activate_chip(roster, registry, "triple_captain", 10)
        new_roster, new_registry, restored = cancel_chip(activation.roster, activation.registry)
        assert new_roster.active_chip is None
        assert new_roster.find_player(CAPTAIN_ID).multiplier == 2
        assert restored.instance_id == "triple_captain_1"
        assert new_registry.instances["triple_captain_1"].available is True

    def test_missing_registry_entry(self, roster, registry):
        roster.active_chip = ChipType.BENCH_BOOST
        with pytest.raises(NotFoundError):
            cancel_chip(roster, registry)
