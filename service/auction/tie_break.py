"""
동점 주사위 판정

최고 유효 입찰액이 같은 입찰자들에게 1~100 주사위를 한 번씩 굴려 가장 높은 사람이 낙찰됩니다.
최고 주사위까지 같으면 해당 입찰자들만 다시 굴려 한 명이 남을 때까지 반복합니다.
"""
import random
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from config.auction import AUCTION, AuctionConfig


@dataclass
class TieRoll:
    """입찰자 1명의 주사위 기록"""

    user_id: int
    roll: int
    rerolls: List[int] = field(default_factory=list)
    is_winner: bool = False

    @property
    def sequence(self) -> List[int]:
        return [self.roll, *self.rerolls]


@dataclass
class TieBreakResult:
    winner_id: int
    winning_roll: int
    rolls: List[TieRoll]


def resolve_tie(
    user_ids: Sequence[int],
    rng: random.Random | None = None,
    config: AuctionConfig = AUCTION
) -> TieBreakResult:
    """
    동점자 중 낙찰자 결정

    Args:
        user_ids: 동점 입찰자 ID 목록 (2명 이상)
        rng: 난수 생성기 (테스트에서 시드 고정용)
        config: 주사위 범위 설정

    Returns:
        낙찰자, 낙찰 주사위(첫 굴림), 주사위 높은 순으로 정렬된 전체 기록
    """
    if len(user_ids) < 2:
        raise ValueError("동점 판정에는 2명 이상이 필요합니다")
    if len(set(user_ids)) != len(user_ids):
        raise ValueError("동점 입찰자 ID가 중복되었습니다")

    rng = rng or random.SystemRandom()

    def _roll() -> int:
        return rng.randint(config.TIE_ROLL_MIN, config.TIE_ROLL_MAX)

    rolls: Dict[int, TieRoll] = {user_id: TieRoll(user_id, _roll()) for user_id in user_ids}

    contenders = _top(rolls, list(user_ids), lambda r: r.roll)
    while len(contenders) > 1:
        for user_id in contenders:
            rolls[user_id].rerolls.append(_roll())
        contenders = _top(rolls, contenders, lambda r: r.rerolls[-1])

    winner = rolls[contenders[0]]
    winner.is_winner = True

    ordered = sorted(rolls.values(), key=lambda r: (not r.is_winner, -r.roll))
    return TieBreakResult(winner_id=winner.user_id, winning_roll=winner.roll, rolls=ordered)


def _top(rolls: Dict[int, TieRoll], candidates: List[int], key) -> List[int]:
    best = max(key(rolls[user_id]) for user_id in candidates)
    return [user_id for user_id in candidates if key(rolls[user_id]) == best]
