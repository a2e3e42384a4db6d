from core.models import FailureReason


class ConfigurationError(Exception):
    """Фатальная ошибка запуска (нет ключей и т.п.)"""


class ChainError(Exception):
    """Базовая ошибка удаленного вызова к ноде"""
    reason = FailureReason.UNKNOWN
    retryable = False


class ExecutionReverted(ChainError):
    reason = FailureReason.EXECUTION_REVERTED
    retryable = True


class InsufficientFunds(ChainError):
    reason = FailureReason.INSUFFICIENT_FUNDS
    retryable = True


class NonceConflict(ChainError):
    reason = FailureReason.NONCE_CONFLICT


class MalformedRequest(ChainError):
    reason = FailureReason.MALFORMED_REQUEST


class TransportError(ChainError):
    reason = FailureReason.TRANSPORT


class ReceiptTimeout(TransportError):
    reason = FailureReason.RECEIPT_TIMEOUT


class ApprovalError(Exception):
    """Approve не прошел: свап с этим allowance выполнять нельзя"""
    reason = FailureReason.APPROVAL_FAILED
