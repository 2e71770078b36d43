"""경매 / DKP 관련 설정"""
from dataclasses import dataclass


# =============================================================================
# 경매
# =============================================================================

@dataclass(frozen=True)
class AuctionConfig:
    """경매 설정"""

    SNIPE_THRESHOLD_SECONDS: int = 30
    """마감 임박 판정 구간 (남은 시간 30초 이하에서 입찰 시 연장)"""

    SNIPE_EXTENSION_SECONDS: int = 30
    """스나이핑 방지 1회 연장 시간 (30초)"""

    MAX_SNIPE_EXTENSION_SECONDS: int = 5 * 60
    """최초 마감 시각 대비 누적 연장 상한 (5분)"""

    DEFAULT_DURATION_SECONDS: int = 5 * 60
    """기본 경매 진행 시간 (5분)"""

    MAX_DURATION_SECONDS: int = 24 * 60 * 60
    """최대 경매 진행 시간 (24시간)"""

    DEFAULT_MIN_BID: int = 0
    """기본 최소 입찰가"""

    TIE_ROLL_MIN: int = 1
    """동점 주사위 최솟값"""

    TIE_ROLL_MAX: int = 100
    """동점 주사위 최댓값"""

    OVERDUE_SWEEP_INTERVAL_SECONDS: int = 60
    """마감 지난 경매 재정산 점검 주기 (1분)"""

    DEFAULT_ITEM_IMAGE: str = "🎁"
    """아이템 아이콘 기본값"""


AUCTION = AuctionConfig()


# =============================================================================
# DKP
# =============================================================================

@dataclass(frozen=True)
class DKPConfig:
    """DKP 장부 설정"""

    DEFAULT_CAP: int = 250
    """DKP 보유 상한"""

    HISTORY_LIMIT: int = 50
    """거래 내역 기본 조회 수"""

    LEADERBOARD_LIMIT: int = 10
    """리더보드 표시 인원"""

    AUCTION_HISTORY_LIMIT: int = 20
    """경매 기록 페이지 크기"""


DKP = DKPConfig()
