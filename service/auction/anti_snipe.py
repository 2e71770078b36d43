"""
스나이핑 방지 연장 규칙

마감 직전 입찰이 들어오면 마감 시각을 뒤로 미루되,
최초 마감 시각 대비 누적 연장은 상한을 넘지 않습니다.
"""
from datetime import datetime, timedelta
from typing import Optional

from config.auction import AUCTION, AuctionConfig
from utils.time_utils import as_utc


def compute_extension(
    ends_at: datetime,
    original_ends_at: datetime,
    now: datetime,
    config: AuctionConfig = AUCTION
) -> Optional[datetime]:
    """
    연장된 마감 시각 계산

    Args:
        ends_at: 현재 마감 시각
        original_ends_at: 생성 시 정해진 마감 시각
        now: 입찰이 수락된 시각
        config: 경매 설정

    Returns:
        새 마감 시각. 마감 임박 구간이 아니거나 누적 연장 상한에 걸리면 None
    """
    ends_at = as_utc(ends_at)
    remaining = (ends_at - as_utc(now)).total_seconds()

    if not (0 < remaining <= config.SNIPE_THRESHOLD_SECONDS):
        return None

    candidate = ends_at + timedelta(seconds=config.SNIPE_EXTENSION_SECONDS)
    total_extension = (candidate - as_utc(original_ends_at)).total_seconds()
    if total_extension > config.MAX_SNIPE_EXTENSION_SECONDS:
        return None

    return candidate
