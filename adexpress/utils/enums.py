from enum import Enum


class ApprovalStatus(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


class UserRole(str, Enum):
    USER = 'user'
    ADMIN = 'admin'
    MODERATOR = 'moderator'


class AdCategory(str, Enum):
    JOBS = 'jobs'
    RENTALS = 'rentals'
    SALES = 'sales'
    SERVICES = 'services'
    VEHICLES = 'vehicles'
    MATRIMONIAL = 'matrimonial'
    GENERAL = 'general'


class SortOrder(str, Enum):
    NEWEST = 'newest'
    OLDEST = 'oldest'
    MOST_VIEWED = 'most_viewed'
    ENDING_SOON = 'ending_soon'


class DateFilter(str, Enum):
    LAST_24H = '24h'
    LAST_7D = '7d'
    LAST_30D = '30d'
    ALL = 'all'


class ExtendMode(str, Enum):
    EXTEND = 'extend'
    RENEW = 'renew'


class CounterKind(str, Enum):
    VIEWS = 'views'
    CALLS = 'calls'

    @property
    def column(self) -> str:
        return f"{self.value}_count"


class ImportStage(str, Enum):
    SELECT = 'select'
    PREVIEW = 'preview'
    UPLOADING = 'uploading'
    DONE = 'done'


class ModerationTab(str, Enum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'
    ALL = 'all'
