from fractions import Fraction

from tourscore.selection import ceil_half, clamp_count, pick_best_n, round_half_up, top_k_with_ties

ROUNDS = ["r1", "r2", "r3", "r4"]


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(-2.5) == -2
    assert round_half_up(7.49) == 7
    assert round_half_up(7.5) == 8
    assert round_half_up(Fraction(-4, 3)) == -1
    assert round_half_up(Fraction(4, 3)) == 1
    assert round_half_up(Fraction(49, 2)) == 25


def test_ceil_half():
    assert ceil_half(10) == 5
    assert ceil_half(11) == 6
    assert ceil_half(0) == 0


def test_clamp_count():
    assert clamp_count(0) == 1
    assert clamp_count(-3) == 1
    assert clamp_count("x") == 1
    assert clamp_count(2.9) == 2
    assert clamp_count(500) == 99


def test_best_n_prefers_higher_totals_then_earlier_rounds():
    totals = {"r1": 30, "r2": 25, "r3": 30, "r4": 20}
    assert pick_best_n(totals, ROUNDS, 2) == {"r1", "r3"}
    assert pick_best_n(totals, ROUNDS, 1) == {"r1"}


def test_best_n_keeps_recorded_final():
    totals = {"r1": 30, "r2": 25, "r3": 30, "r4": 20}
    chosen = pick_best_n(totals, ROUNDS, 2, final_round_id="r4", final_required=True)
    assert chosen == {"r4", "r1"}


def test_best_n_without_final_total_uses_other_rounds():
    totals = {"r1": 30, "r2": 25, "r3": 30, "r4": None}
    chosen = pick_best_n(totals, ROUNDS, 2, final_round_id="r4", final_required=True)
    assert chosen == {"r1", "r3"}


def test_best_n_size_is_bounded_by_available_rounds():
    totals = {"r1": 30, "r2": None, "r3": 12}
    assert pick_best_n(totals, ROUNDS, 3) == {"r1", "r3"}
    assert pick_best_n(totals, ROUNDS, 0) == {"r1"}
    assert pick_best_n({}, ROUNDS, 2) == set()


def test_top_k_counts_exactly_k_and_flags_ties():
    entries = [("a", 3), ("b", 2), ("c", 3), ("d", 2), ("e", 0)]

    two = top_k_with_ties(entries, 2)
    assert two.counted == ("a", "c")
    assert two.qualifying == ()
    assert two.cutoff == 3
    assert two.counted_total == 6

    three = top_k_with_ties(entries, 3)
    assert three.counted == ("a", "c", "b")
    assert three.qualifying == ("d",)
    assert three.cutoff == 2


def test_top_k_ignores_zeros_and_clamps_k():
    selection = top_k_with_ties([("a", 3), ("b", 3), ("c", 0)], 0)
    assert selection.counted == ("a",)
    assert selection.qualifying == ("b",)

    empty = top_k_with_ties([("a", 0)], 2)
    assert empty.counted == ()
    assert empty.cutoff is None
    assert empty.counted_total == 0
