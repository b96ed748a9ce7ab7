"""
Read side of the engine: visibility, search, sorting, counts and duplicate detection.

Everything here is a pure function of an ad collection and a reference time.
"""

from collections import Counter
from datetime import datetime, timedelta
from typing import Iterable, Optional

from adexpress.schemas.advertisement import Ad
from adexpress.schemas.bulk import BulkAdRow, DuplicateEntry, DuplicateResult
from adexpress.schemas.search import AdsFilter, OwnerDashboard
from adexpress.utils.enums import ApprovalStatus, DateFilter, ModerationTab, SortOrder
from adexpress.utils.helpers import digits_only

DATE_WINDOWS = {
    DateFilter.LAST_24H: timedelta(hours=24),
    DateFilter.LAST_7D: timedelta(days=7),
    DateFilter.LAST_30D: timedelta(days=30),
    DateFilter.ALL: None,
}

# Sort key and whether it is descending.
SORT_KEYS = {
    SortOrder.NEWEST: (lambda ad: ad.created_at, True),
    SortOrder.OLDEST: (lambda ad: ad.created_at, False),
    SortOrder.MOST_VIEWED: (lambda ad: ad.views_count, True),
    SortOrder.ENDING_SOON: (lambda ad: ad.expires_at, False),
}

SEARCH_FIELDS = ('title', 'subject', 'description', 'city', 'location')


def is_publicly_visible(ad: Ad, now: datetime) -> bool:
    return ad.is_publicly_visible(now)


def visible_ads(ads: Iterable[Ad], now: datetime) -> list[Ad]:
    return [ad for ad in ads if ad.is_publicly_visible(now)]


def matches_search(ad: Ad, query: Optional[str]) -> bool:
    """
    Case-insensitive substring match over the searchable text fields.

    :param ad: The ad.
    :param query: Search text, empty matches everything.
    """
    needle = (query or '').strip().lower()
    if not needle:
        return True
    return any(needle in (getattr(ad, field) or '').lower() for field in SEARCH_FIELDS)


def matches_criteria(ad: Ad, criteria: AdsFilter, now: datetime) -> bool:
    if criteria.category != 'all' and ad.category.value != criteria.category.lower():
        return False
    if criteria.city != 'all' and ad.city != criteria.city:
        return False

    window = DATE_WINDOWS[criteria.date_filter]
    if window is not None and ad.created_at < now - window:
        return False

    return matches_search(ad, criteria.search_query)


def sort_ads(ads: Iterable[Ad], sort_order: SortOrder) -> list[Ad]:
    """
    Sort by the selected key with featured ads pinned first.
    Both passes are stable, so ties keep the order of the selected key.
    """
    key, descending = SORT_KEYS[sort_order]
    ordered = sorted(ads, key=key, reverse=descending)
    ordered.sort(key=lambda ad: not ad.is_featured)
    return ordered


def filter_ads(ads: Iterable[Ad], criteria: AdsFilter, now: datetime) -> list[Ad]:
    """
    Public browsing: visible ads matching the criteria, in display order.

    :param ads: Every known ad.
    :param criteria: Search text, category, city, date window and sort order.
    :param now: Reference time for expiry and the date window.
    :return: The ads to show.
    """
    selected = [ad for ad in ads if ad.is_publicly_visible(now) and matches_criteria(ad, criteria, now)]
    return sort_ads(selected, criteria.sort_order)


def featured_ads(ads: Iterable[Ad], now: datetime) -> list[Ad]:
    return sort_ads([ad for ad in ads if ad.is_featured and ad.is_publicly_visible(now)], SortOrder.NEWEST)


def category_counts(ads: Iterable[Ad], now: datetime) -> dict[str, int]:
    """
    Visible ads per category, ``'all'`` holds the total.
    """
    visible = visible_ads(ads, now)
    counts = Counter(ad.category.value for ad in visible)
    return {'all': len(visible), **counts}


def city_counts(ads: Iterable[Ad], now: datetime) -> dict[str, int]:
    visible = visible_ads(ads, now)
    counts = Counter(ad.city for ad in visible)
    return {'all': len(visible), **counts}


def owner_dashboard(ads: Iterable[Ad], owner_id: str, now: datetime) -> OwnerDashboard:
    """
    Split an owner's ads into pending, rejected, active and expired, newest first.
    Moderation state wins over expiry for pending and rejected ads.
    """
    dashboard = OwnerDashboard()
    owned = sorted((ad for ad in ads if ad.owner_id == owner_id), key=lambda ad: ad.created_at, reverse=True)
    for ad in owned:
        if ad.approval_status == ApprovalStatus.PENDING:
            dashboard.pending.append(ad)
        elif ad.approval_status == ApprovalStatus.REJECTED:
            dashboard.rejected.append(ad)
        elif ad.is_active and not ad.is_expired(now):
            dashboard.active.append(ad)
        else:
            dashboard.expired.append(ad)
    return dashboard


def moderation_queue(ads: Iterable[Ad], tab: ModerationTab = ModerationTab.PENDING) -> list[Ad]:
    selected = [ad for ad in ads if tab == ModerationTab.ALL or ad.approval_status.value == tab.value]
    return sorted(selected, key=lambda ad: ad.created_at, reverse=True)


def duplicate_signature(title: str, phone: str) -> str:
    return f"{(title or '').lower().strip()}|{digits_only(phone)}"


def find_duplicates(rows: Iterable[BulkAdRow], existing: Iterable[Ad]) -> DuplicateResult:
    """
    Split import rows into duplicates of existing ads and clean rows.

    Rows are only compared with ads already known, never with each other.

    :param rows: Validated import rows.
    :param existing: The current ad set.
    :return: Duplicates and the rows that may be imported.
    """
    index = {}
    for ad in existing:
        index.setdefault(duplicate_signature(ad.title, ad.phone_number), ad.id)

    result = DuplicateResult()
    for row in rows:
        existing_id = index.get(duplicate_signature(row.title, row.phone_number))
        if existing_id is None:
            result.clean_data.append(row)
        else:
            result.duplicates.append(DuplicateEntry(
                row=row.row,
                existing_ad_id=existing_id,
                title=row.title,
                phone=row.phone_number
            ))
    return result
