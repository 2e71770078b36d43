"""
동점 주사위 판정 테스트
"""
import random

import pytest

from service.auction.tie_break import resolve_tie


class ScriptedRng:
    """정해진 순서대로 값을 돌려주는 난수 생성기"""

    def __init__(self, values):
        self._values = list(values)
        self.calls = []

    def randint(self, low, high):
        self.calls.append((low, high))
        return self._values.pop(0)


class TestResolveTie:
    def test_highest_roll_wins(self):
        result = resolve_tie([1, 2, 3], rng=ScriptedRng([40, 90, 15]))

        assert result.winner_id == 2
        assert result.winning_roll == 90
        assert [r.user_id for r in result.rolls] == [2, 1, 3]
        assert [r.is_winner for r in result.rolls] == [True, False, False]

    def test_rolls_use_configured_range(self):
        rng = ScriptedRng([10, 20])
        resolve_tie([1, 2], rng=rng)
        assert rng.calls == [(1, 100), (1, 100)]

    def test_top_tie_rerolls_only_tied_users(self):
        # 1, 2가 80으로 동점 -> 둘만 다시 굴림 (30 vs 70)
        rng = ScriptedRng([80, 80, 50, 30, 70])
        result = resolve_tie([1, 2, 3], rng=rng)

        assert result.winner_id == 2
        assert result.winning_roll == 80
        by_user = {r.user_id: r for r in result.rolls}
        assert by_user[1].rerolls == [30]
        assert by_user[2].rerolls == [70]
        assert by_user[3].rerolls == []
        assert by_user[2].sequence == [80, 70]

    def test_repeated_rerolls_until_unique(self):
        rng = ScriptedRng([55, 55, 12, 12, 99, 3])
        result = resolve_tie([7, 8], rng=rng)

        assert result.winner_id == 7
        assert result.rolls[0].rerolls == [12, 99]

    def test_winner_always_holds_max_roll(self):
        rng = random.Random(2024)
        for _ in range(200):
            user_ids = list(range(1, rng.randint(2, 6) + 1))
            result = resolve_tie(user_ids, rng=rng)

            assert len(result.rolls) == len(user_ids)
            assert sum(r.is_winner for r in result.rolls) == 1
            assert {r.user_id for r in result.rolls} == set(user_ids)
            assert result.winning_roll == max(r.roll for r in result.rolls)
            assert all(1 <= r.roll <= 100 for r in result.rolls)

    def test_default_rng(self):
        result = resolve_tie([1, 2])
        assert result.winner_id in (1, 2)

    @pytest.mark.parametrize("user_ids", [[], [1], [1, 1]])
    def test_invalid_input(self, user_ids):
        with pytest.raises(ValueError):
            resolve_tie(user_ids)
