"""
Scheduling error taxonomy and error aggregation.

Every failure the engine reports carries an ``ErrorCode`` so callers can tell
"pick another time" (slot_conflict) apart from "retry" (internal) and from
constraint explanations (notice_violation, daily_limit_exceeded).
"""
import hashlib
import time
from collections import defaultdict
from enum import Enum
from typing import Any, Dict, Optional

import structlog

logger = structlog.get_logger(__name__)


class ErrorCode(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_RANGE = "invalid_range"
    INVALID_INPUT = "invalid_input"
    SLOT_CONFLICT = "slot_conflict"
    NOTICE_VIOLATION = "notice_violation"
    DAILY_LIMIT_EXCEEDED = "daily_limit_exceeded"
    INVALID_STATE = "invalid_state"
    UNAUTHORIZED = "unauthorized"
    INTERNAL = "internal"


HTTP_STATUS = {
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.INVALID_RANGE: 400,
    ErrorCode.INVALID_INPUT: 422,
    ErrorCode.SLOT_CONFLICT: 409,
    ErrorCode.NOTICE_VIOLATION: 422,
    ErrorCode.DAILY_LIMIT_EXCEEDED: 422,
    ErrorCode.INVALID_STATE: 409,
    ErrorCode.UNAUTHORIZED: 403,
    ErrorCode.INTERNAL: 500,
}


class SchedulingError(Exception):
    """Base class for every typed failure of the scheduling engine."""

    code: ErrorCode = ErrorCode.INTERNAL
    default_message = "Scheduling operation failed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    @property
    def http_status(self) -> int:
        return HTTP_STATUS[self.code]

    def to_dict(self) -> Dict[str, Any]:
        return {"success": False, "error": self.code.value, "message": self.message}


class NotFoundError(SchedulingError):
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class InvalidRangeError(SchedulingError):
    code = ErrorCode.INVALID_RANGE
    default_message = "Invalid date range"


class InvalidInputError(SchedulingError):
    code = ErrorCode.INVALID_INPUT
    default_message = "Invalid input"


class SlotConflictError(SchedulingError):
    code = ErrorCode.SLOT_CONFLICT
    default_message = "That time is no longer available. Please pick another slot."


class NoticeViolationError(SchedulingError):
    code = ErrorCode.NOTICE_VIOLATION
    default_message = "That time is too soon to book"


class DailyLimitExceededError(SchedulingError):
    code = ErrorCode.DAILY_LIMIT_EXCEEDED
    default_message = "The host has reached the daily limit for this event"


class InvalidStateError(SchedulingError):
    code = ErrorCode.INVALID_STATE
    default_message = "Meeting can no longer be changed"


class UnauthorizedError(SchedulingError):
    code = ErrorCode.UNAUTHORIZED
    default_message = "Not allowed to change this meeting"


class InternalError(SchedulingError):
    code = ErrorCode.INTERNAL
    default_message = "Something went wrong, please retry"


class ErrorSeverity(Enum):
    """Error severity levels for smart alerting."""
    LOW = "low"           # expected failures: conflicts, validation
    MEDIUM = "medium"     # collaborator failures, timeouts
    HIGH = "high"         # storage/transaction failures
    CRITICAL = "critical"


class ErrorPattern:
    """Track error patterns to reduce duplicate logging."""

    def __init__(self, error_type: str, message: str, context: Dict[str, Any]):
        self.error_type = error_type
        self.message = message[:100]
        self.context = {k: v for k, v in context.items() if k in ['endpoint', 'operation', 'sink']}
        self.fingerprint = self._generate_fingerprint()
        self.first_seen = time.time()
        self.last_seen = time.time()
        self.count = 1

    def _generate_fingerprint(self) -> str:
        content = f"{self.error_type}:{self.message}:{self.context.get('operation', '')}:{self.context.get('sink', '')}"
        return hashlib.md5(content.encode(), usedforsecurity=False).hexdigest()[:8]

    def update(self):
        self.last_seen = time.time()
        self.count += 1


class ErrorAggregator:
    """Aggregate and deduplicate errors so repeated sink failures don't spam logs."""

    def __init__(self, log_threshold: int = 10, time_window: int = 300):
        self.log_threshold = log_threshold
        self.time_window = time_window
        self.patterns: Dict[str, ErrorPattern] = {}
        self.severity_override = {
            "SlotConflictError": ErrorSeverity.LOW,
            "InvalidInputError": ErrorSeverity.LOW,
            "TimeoutError": ErrorSeverity.MEDIUM,
            "ConnectError": ErrorSeverity.MEDIUM,
            "HttpError": ErrorSeverity.MEDIUM,
            "InternalError": ErrorSeverity.HIGH,
            "OperationalError": ErrorSeverity.HIGH,
            "IntegrityError": ErrorSeverity.HIGH,
        }

    def _determine_severity(self, error: Exception) -> ErrorSeverity:
        error_type = type(error).__name__
        if error_type in self.severity_override:
            return self.severity_override[error_type]
        if isinstance(error, SchedulingError):
            return ErrorSeverity.HIGH if error.code == ErrorCode.INTERNAL else ErrorSeverity.LOW
        return ErrorSeverity.MEDIUM

    def should_log(self, pattern: ErrorPattern, severity: ErrorSeverity) -> bool:
        if severity in [ErrorSeverity.HIGH, ErrorSeverity.CRITICAL]:
            return True
        if pattern.count == 1:
            return True
        if severity == ErrorSeverity.MEDIUM and pattern.count % self.log_threshold == 0:
            return True
        if severity == ErrorSeverity.LOW and pattern.count % (self.log_threshold * 5) == 0:
            return True
        return False

    def log_error(self, error: Exception, context: Optional[Dict[str, Any]] = None,
                  severity: Optional[ErrorSeverity] = None) -> str:
        """Log error with deduplication and frequency control."""
        context = context or {}
        if severity is None:
            severity = self._determine_severity(error)

        error_type = type(error).__name__
        message = str(error)

        pattern = ErrorPattern(error_type, message, context)
        fingerprint = pattern.fingerprint

        if fingerprint in self.patterns:
            self.patterns[fingerprint].update()
            pattern = self.patterns[fingerprint]
        else:
            self.patterns[fingerprint] = pattern

        if self.should_log(pattern, severity):
            logger.error(
                "aggregated_error",
                error_hash=fingerprint,
                error_type=error_type,
                error=message,
                count=pattern.count,
                severity=severity.value,
                **context
            )

        return fingerprint

    def get_error_summary(self) -> Dict[str, Any]:
        """Summary of recent errors for /metrics."""
        now = time.time()
        recent = {
            fp: pattern for fp, pattern in self.patterns.items()
            if now - pattern.last_seen < self.time_window
        }

        by_type: Dict[str, int] = defaultdict(int)
        for pattern in recent.values():
            by_type[pattern.error_type] += pattern.count

        top_errors = sorted(recent.values(), key=lambda p: p.count, reverse=True)[:5]
        return {
            "total_unique_errors": len(recent),
            "total_error_count": sum(p.count for p in recent.values()),
            "by_type": dict(by_type),
            "top_errors": [
                {"fingerprint": p.fingerprint, "type": p.error_type, "message": p.message, "count": p.count}
                for p in top_errors
            ],
        }

    def cleanup_old_patterns(self):
        """Remove old error patterns to prevent unbounded growth."""
        cutoff = time.time() - (self.time_window * 10)
        old_patterns = [fp for fp, p in self.patterns.items() if p.last_seen < cutoff]
        for fp in old_patterns:
            del self.patterns[fp]
        if old_patterns:
            logger.info("error_cleanup", removed_patterns=len(old_patterns))


# Global error aggregator instance
error_aggregator = ErrorAggregator()


def log_error(error: Exception, context: Optional[Dict[str, Any]] = None,
              severity: Optional[ErrorSeverity] = None) -> str:
    """Convenience function to log errors through the global aggregator."""
    return error_aggregator.log_error(error, context, severity)
