"""Unit tests for choosing who is eliminated after a gameweek."""

from predictions.schemas.eliminations import SYSTEM_ACTOR_ID, EliminationTrigger
from predictions.services.elimination_service import rank_for_elimination, trigger_for_actor


def test_lowest_totals_are_eliminated_first():
    picks = [(1, 3), (1, 3), (2, 1), (3, 0), (3, 3)]
    ranked = rank_for_elimination(picks, set(), 2)
    assert [(c.user_id, c.total_points) for c in ranked] == [(2, 1), (3, 3)]


def test_ties_go_to_the_lower_user_id():
    ranked = rank_for_elimination([(7, 1), (4, 1), (9, 3)], set(), 1)
    assert [c.user_id for c in ranked] == [4]


def test_previously_eliminated_users_are_skipped():
    ranked = rank_for_elimination([(1, 0), (2, 1), (3, 2)], {1}, 1)
    assert [c.user_id for c in ranked] == [2]


def test_count_larger_than_field_eliminates_everyone_left():
    ranked = rank_for_elimination([(1, 0), (2, 1)], set(), 5)
    assert len(ranked) == 2


def test_zero_count_eliminates_nobody():
    assert rank_for_elimination([(1, 0)], set(), 0) == []


def test_trigger_reflects_actor():
    assert trigger_for_actor(SYSTEM_ACTOR_ID) is EliminationTrigger.SYSTEM
    assert trigger_for_actor(42) is EliminationTrigger.ADMIN
