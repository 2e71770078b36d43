"""
DKP 경매 봇 커스텀 예외 클래스 정의

모든 예외는 DKPBotError를 상속받아 일관된 에러 처리를 제공합니다.
입찰 거절 예외는 reason 코드를 함께 가지고 있어 호출자가 사유를 구분할 수 있습니다.
"""
from enum import Enum


class BidRejectReason(str, Enum):
    """입찰/경매 요청 거절 사유 코드"""
    AUCTION_NOT_FOUND = "AUCTION_NOT_FOUND"
    AUCTION_NOT_ACTIVE = "AUCTION_NOT_ACTIVE"
    INVALID_AMOUNT = "INVALID_AMOUNT"
    BID_TOO_LOW = "BID_TOO_LOW"
    INSUFFICIENT_FUNDS = "INSUFFICIENT_FUNDS"


class DKPBotError(Exception):
    """DKP 봇 기본 예외 클래스"""

    reason = None

    def __init__(self, message: str = "알 수 없는 오류가 발생했습니다"):
        self.message = message
        super().__init__(self.message)


# =============================================================================
# 사용자 관련 예외
# =============================================================================


class UserNotFoundError(DKPBotError):
    """사용자를 찾을 수 없음"""

    def __init__(self, user_id: int):
        self.user_id = user_id
        super().__init__(f"사용자를 찾을 수 없습니다: {user_id}")


class UserNotRegisteredError(DKPBotError):
    """미등록 사용자"""

    def __init__(self, discord_id: int):
        self.discord_id = discord_id
        super().__init__("길드 명단에 등록되지 않은 사용자입니다. 오피서에게 문의하세요.")


class PermissionDeniedError(DKPBotError):
    """권한 부족"""

    def __init__(self, required_role: str):
        self.required_role = required_role
        super().__init__(f"{required_role} 이상만 사용할 수 있습니다.")


# =============================================================================
# 경매 검증 예외 (자동 재시도 없음)
# =============================================================================


class AuctionValidationError(DKPBotError):
    """경매 요청 검증 실패 기본 예외"""
    pass


class AuctionNotFoundError(AuctionValidationError):
    """경매를 찾을 수 없음"""

    reason = BidRejectReason.AUCTION_NOT_FOUND

    def __init__(self, auction_id: int):
        self.auction_id = auction_id
        super().__init__(f"경매를 찾을 수 없습니다: {auction_id}")


class AuctionNotActiveError(AuctionValidationError):
    """진행 중이 아닌 경매"""

    reason = BidRejectReason.AUCTION_NOT_ACTIVE

    def __init__(self, auction_id: int, status: str):
        self.auction_id = auction_id
        self.status = status
        super().__init__(f"진행 중인 경매가 아닙니다. (경매 {auction_id}, 상태: {status})")


class InvalidBidAmountError(AuctionValidationError):
    """잘못된 입찰 금액"""

    reason = BidRejectReason.INVALID_AMOUNT

    def __init__(self, amount):
        self.amount = amount
        super().__init__(f"입찰 금액은 1 이상의 정수여야 합니다. (입력: {amount})")


class InvalidAuctionConfigError(AuctionValidationError):
    """잘못된 경매 생성 값"""

    def __init__(self, field: str, reason: str):
        self.field = field
        self.detail = reason
        super().__init__(f"경매 설정 오류 ({field}): {reason}")


# =============================================================================
# 입찰 충돌 예외 (더 높은 금액으로 새로 입찰 가능)
# =============================================================================


class BidConflictError(DKPBotError):
    """입찰 경합 기본 예외"""
    pass


class BidTooLowError(BidConflictError):
    """입찰가가 현재 최고가 이하"""

    reason = BidRejectReason.BID_TOO_LOW

    def __init__(self, current_bid: int, bid_amount: int, is_minimum: bool = False):
        self.current_bid = current_bid
        self.bid_amount = bid_amount
        self.is_minimum = is_minimum
        label = "최소 입찰가" if is_minimum else "현재 최고가"
        super().__init__(
            f"입찰가가 너무 낮습니다. ({label}: {current_bid} DKP, 입찰: {bid_amount} DKP)"
        )


# =============================================================================
# 자원 관련 예외
# =============================================================================


class InsufficientResourceError(DKPBotError):
    """자원 부족"""

    def __init__(self, resource_name: str, required: int, current: int):
        self.resource_name = resource_name
        self.required = required
        self.current = current
        super().__init__(
            f"{resource_name}이(가) 부족합니다. (필요: {required}, 보유: {current})"
        )


class InsufficientDKPError(InsufficientResourceError):
    """사용 가능한 DKP 부족 (다른 경매의 선두 입찰액 포함)"""

    reason = BidRejectReason.INSUFFICIENT_FUNDS

    def __init__(self, required: int, available: int):
        super().__init__("DKP", required, available)


# =============================================================================
# 저장소 관련 예외 (재시도로 복구)
# =============================================================================


class PersistenceError(DKPBotError):
    """저장소/트랜잭션 실패 기본 예외"""
    pass


class SettlementError(PersistenceError):
    """경매 정산 실패 (경매는 active 상태로 남음)"""

    def __init__(self, auction_id: int, detail: str = ""):
        self.auction_id = auction_id
        self.detail = detail
        message = f"경매 {auction_id} 정산에 실패했습니다. 잠시 후 다시 시도됩니다."
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
