"""Global enums: values are what the API accepts and what the DB stores."""

from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "cash"
    CREDIT_CARD = "credit_card"
    DEBIT_CARD = "debit_card"
    BANK_TRANSFER = "bank_transfer"
    DIGITAL_WALLET = "digital_wallet"
    OTHER = "other"


class RecurringPeriod(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DateGrouping(str, Enum):
    """Bucket size for /analytics/by-date."""
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


class TrendPeriod(str, Enum):
    """Bucket size for /analytics/trends."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class CacheResource(str, Enum):
    """Cache key namespaces: keys are '{resource}:{user_id}:{query}'."""
    EXPENSES = "expenses"
    CATEGORIES = "categories"
    ANALYTICS = "analytics"


class ChangeAction(str, Enum):
    """Realtime event suffix: events are '{resource}:{action}'."""
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class MirrorEntity(str, Enum):
    USER = "user"
    CATEGORY = "category"
    EXPENSE = "expense"
