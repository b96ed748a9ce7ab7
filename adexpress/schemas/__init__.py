from adexpress.schemas.advertisement import Ad, AdForm, AdUpdate, backfill_approval_status, translate_validation_error
from adexpress.schemas.bulk import (
    BulkAdRow,
    DuplicateEntry,
    DuplicateResult,
    ImportReport,
    ParseResult,
    UploadHistoryItem,
)
from adexpress.schemas.search import AdsFilter, OwnerDashboard, SavedSearchForm
