"""Tests for the rule constants and pure pricing / transfer rules."""

import pytest

from fplsquad.schemas.fpl_rules import (
    CHIP_WINDOWS,
    HIT_COST,
    MAX_FREE_TRANSFERS,
    ChipType,
    chip_kind,
    compute_next_gw_fts,
    get_chip_half,
    selling_price,
    transfer_points_cost,
    weekly_transfer_cost,
)


# ---------------------------------------------------------------------------
# Selling price
# ---------------------------------------------------------------------------

class TestSellingPrice:
    def test_price_drop_is_not_passed_on(self):
        assert selling_price(100, 80) == 100

    def test_half_profit_kept(self):
        assert selling_price(100, 104) == 102

    def test_odd_profit_rounds_down(self):
        assert selling_price(100, 105) == 102
        assert selling_price(100, 101) == 100

    def test_unchanged_price(self):
        assert selling_price(75, 75) == 75

    def test_never_above_current_when_rising(self):
        for purchase in range(40, 60):
            for current in range(purchase, purchase + 30):
                sp = selling_price(purchase, current)
                assert sp == purchase + (current - purchase) // 2
                assert purchase <= sp <= current


# ---------------------------------------------------------------------------
# Transfer cost
# ---------------------------------------------------------------------------

class TestTransferCost:
    def test_free_while_under_allowance(self):
        assert transfer_points_cost(0, 2) == 0
        assert transfer_points_cost(1, 2) == 0

    def test_hit_once_allowance_used(self):
        assert transfer_points_cost(2, 2) == HIT_COST
        assert transfer_points_cost(1, 1) == HIT_COST

    @pytest.mark.parametrize("chip", [ChipType.WILDCARD, ChipType.FREE_HIT])
    def test_unlimited_chips_are_free(self, chip):
        assert transfer_points_cost(7, 1, chip) == 0
        assert weekly_transfer_cost(7, 1, chip) == 0

    def test_other_chips_do_not_waive_hits(self):
        assert transfer_points_cost(1, 1, ChipType.BENCH_BOOST) == HIT_COST

    def test_weekly_cost(self):
        assert weekly_transfer_cost(0, 1) == 0
        assert weekly_transfer_cost(3, 1) == 2 * HIT_COST


# ---------------------------------------------------------------------------
# Free-transfer accrual
# ---------------------------------------------------------------------------

class TestFreeTransferAccrual:
    def test_banks_one_when_unused(self):
        assert compute_next_gw_fts(1, 0) == 2

    def test_capped(self):
        assert compute_next_gw_fts(2, 0) == MAX_FREE_TRANSFERS

    def test_resets_after_any_transfer(self):
        assert compute_next_gw_fts(2, 1) == 1
        assert compute_next_gw_fts(1, 3) == 1


# ---------------------------------------------------------------------------
# Chip windows
# ---------------------------------------------------------------------------

class TestChipWindows:
    def test_eight_instances(self):
        assert len(CHIP_WINDOWS) == 8
        for kind in ChipType:
            assert f"{kind.value}_1" in CHIP_WINDOWS
            assert f"{kind.value}_2" in CHIP_WINDOWS

    def test_first_half_windows(self):
        assert CHIP_WINDOWS["bench_boost_1"][1:] == (1, 19)
        assert CHIP_WINDOWS["triple_captain_1"][1:] == (1, 19)
        assert CHIP_WINDOWS["free_hit_1"][1:] == (2, 19)
        assert CHIP_WINDOWS["wildcard_1"][1:] == (2, 19)

    def test_second_half_windows(self):
        for kind in ChipType:
            assert CHIP_WINDOWS[f"{kind.value}_2"][1:] == (20, 38)

    def test_chip_kind(self):
        assert chip_kind("free_hit_2") is ChipType.FREE_HIT

    def test_chip_half(self):
        assert get_chip_half(19) == 1
        assert get_chip_half(20) == 2
