"""
Domain errors raised by the subscription core.

Each error carries a stable `code` so the HTTP layer (core/exception_handlers.py)
can map it to a status and the standard error envelope without string matching.

- ValidationError: slot configuration rejected (never silently coerced)
- LockedWindow / NotScheduled: expected, recoverable outcomes of a skip toggle
- ReasonRequired / FreeTextRequired: cancellation input rejected
- NotFound: unknown subscription, slot or product
- StoreUnavailable: persistence failed; callers may retry
- InvalidTransition: illegal slot state change (e.g. pausing a cancelled slot)
- ConcurrentUpdate: a skip override changed between read and write (another writer won)
"""


class SubscriptionError(Exception):
    code = "subscription_error"

    def __init__(self, message: str | None = None):
        self.message = message or self.__class__.__name__
        super().__init__(self.message)


class ValidationError(SubscriptionError):
    code = "validation_error"

    INVALID_QUANTITY = "InvalidQuantity"
    DAYS_REQUIRED = "DaysRequired"
    INVALID_TIME_WINDOW = "InvalidTimeWindow"
    NO_SLOT_ENABLED = "NoSlotEnabled"
    INVALID_REASON = "InvalidReason"

    def __init__(self, kind: str, message: str | None = None):
        self.kind = kind
        super().__init__(message or kind)


class LockedWindow(SubscriptionError):
    code = "locked_window"


class NotScheduled(SubscriptionError):
    code = "not_scheduled"


class ReasonRequired(SubscriptionError):
    code = "reason_required"


class FreeTextRequired(SubscriptionError):
    code = "free_text_required"


class NotFound(SubscriptionError):
    code = "not_found"


class StoreUnavailable(SubscriptionError):
    code = "store_unavailable"


class InvalidTransition(SubscriptionError):
    code = "invalid_transition"


class ConcurrentUpdate(SubscriptionError):
    code = "concurrent_update"
