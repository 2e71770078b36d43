"""
DKP 경매 봇 설정 상수

모든 매직 넘버와 경매 규칙 관련 상수를 여기서 관리합니다.
각 도메인별 설정은 config/ 하위 모듈에 정의되어 있습니다.
"""
from config.auction import AuctionConfig, AUCTION, DKPConfig, DKP
from config.ui import EmbedColor, UIConfig, UI

__all__ = [
    # auction
    "AuctionConfig", "AUCTION",
    # dkp
    "DKPConfig", "DKP",
    # ui
    "EmbedColor", "UIConfig", "UI",
]
