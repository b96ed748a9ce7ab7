from datetime import datetime, timedelta
from typing import Callable, Optional, Union
from uuid import uuid4

from pydantic import ValidationError

from adexpress.schemas.advertisement import Ad, AdForm, AdUpdate, canonical_content, translate_validation_error
from adexpress.schemas.bulk import BulkAdRow, DuplicateResult
from adexpress.schemas.search import AdsFilter, OwnerDashboard
from adexpress.services import query
from adexpress.services.storage import AdStore
from adexpress.services.user import AuthFacade
from adexpress.utils.const import VALID_DURATIONS
from adexpress.utils.enums import ApprovalStatus, CounterKind, ExtendMode, ModerationTab
from adexpress.utils.exceptions import Forbidden, InvalidArgument, NotFound, ValidationFailed
from adexpress.utils.helpers import utcnow
from adexpress.utils.log import setup_logging
from adexpress.utils.validators import parse_duration, validate_ad_fields

logger = setup_logging()


class AdvertisementService:
    """
    Advertisement services.

    Holds the in-memory ad map of one process. Every mutation is applied to the map
    first and then handed to the store, which mirrors it locally and writes it
    durably on a best-effort basis.
    """

    def __init__(self, store: AdStore, auth: AuthFacade, clock: Callable[[], datetime] = utcnow):
        """
        Constructor.

        :param store: Persistence facade.
        :param auth: Source of the caller identity and admin rights.
        :param clock: Returns the current aware UTC time.
        """
        self._store = store
        self._auth = auth
        self._clock = clock
        self._ads: dict[str, Ad] = {}
        store.subscribe_changes(self._on_remote_change)

    async def _on_remote_change(self, message: dict) -> None:
        logger.debug(f"Remote change {message}, refreshing.")
        await self.refresh()

    async def refresh(self) -> list[Ad]:
        """
        Replace the in-memory map with the store's merged view.

        :return: Every known ad.
        """
        ads = await self._store.list_ads()
        self._ads = {ad.id: ad for ad in ads}
        logger.debug(f"Refreshed {len(self._ads)} advertisements.")
        return ads

    @property
    def ads(self) -> list[Ad]:
        return list(self._ads.values())

    def get(self, ad_id: str) -> Ad:
        """
        Get advertisement by ID.

        :param ad_id: Advertisement ID.
        :return: Advertisement.
        """
        try:
            return self._ads[ad_id]
        except KeyError:
            raise NotFound(ad_id) from None

    def now(self) -> datetime:
        return self._clock()

    def require_user(self) -> str:
        user_id = self._auth.current_user_id()
        if not user_id:
            raise Forbidden("You must be signed in.")
        return user_id

    async def require_admin(self) -> str:
        user_id = self.require_user()
        if not await self._auth.is_admin(user_id):
            raise Forbidden("Only administrators can do this.")
        return user_id

    async def _caller(self) -> tuple[str, bool]:
        user_id = self.require_user()
        return user_id, await self._auth.is_admin(user_id)

    @staticmethod
    def _check_owner_or_admin(ad: Ad, user_id: str, admin: bool) -> None:
        if ad.owner_id != user_id and not admin:
            raise Forbidden("Only the owner or an administrator can do this.")

    async def _apply(self, ad: Ad, changes: dict) -> Ad:
        # ``ad`` must have been read after the caller's last await.
        updated = ad.model_copy(update=changes)
        self._ads[ad.id] = updated
        await self._store.update_ad(updated, changes)
        return updated

    @staticmethod
    def _duration(days) -> int:
        duration = parse_duration(days)
        if duration is None:
            raise InvalidArgument(
                'duration_days',
                f"Invalid duration. Valid options: {', '.join(str(d) for d in VALID_DURATIONS)} days"
            )
        return duration

    async def submit(self, form: Union[AdForm, dict], auto_approve: bool = False) -> Ad:
        """
        Create an ad for the signed-in user.

        :param form: Raw or parsed submission.
        :param auto_approve: Publish immediately, administrators only.
        :return: The new ad, pending unless auto approved.
        """
        user_id = self.require_user()

        if not isinstance(form, AdForm):
            try:
                form = AdForm.model_validate(form)
            except ValidationError as e:
                raise ValidationFailed(translate_validation_error(e)) from None

        errors = validate_ad_fields(form.content())
        if errors:
            raise ValidationFailed(errors)

        if auto_approve:
            await self.require_admin()

        content = canonical_content(form.content())
        days = content.pop('duration_days')
        now = self._clock()

        ad = Ad(
            id=str(uuid4()),
            owner_id=user_id,
            created_at=now,
            expires_at=now + timedelta(days=days),
            approval_status=ApprovalStatus.APPROVED if auto_approve else ApprovalStatus.PENDING,
            approved_at=now if auto_approve else None,
            approved_by=user_id if auto_approve else None,
            **content
        )
        self._ads[ad.id] = ad
        await self._store.insert_ad(ad)
        logger.info(f"Ad {ad.id} submitted by {user_id} ({ad.approval_status.value}).")
        return ad

    async def approve(self, ad_id: str) -> Ad:
        """
        Approve a pending or rejected ad. The time spent waiting for moderation is
        refunded: the original duration restarts from now.
        """
        admin_id = await self.require_admin()
        ad = self.get(ad_id)
        if ad.approval_status not in (ApprovalStatus.PENDING, ApprovalStatus.REJECTED):
            raise InvalidArgument('approval_status', "Only pending or rejected ads can be approved.")

        now = self._clock()
        updated = await self._apply(ad, {
            'approval_status': ApprovalStatus.APPROVED,
            'approved_at': now,
            'approved_by': admin_id,
            'expires_at': now + ad.duration,
            'rejection_reason': None,
        })
        logger.info(f"Ad {ad_id} approved by {admin_id}.")
        return updated

    async def reject(self, ad_id: str, reason: Optional[str]) -> Ad:
        admin_id = await self.require_admin()
        ad = self.get(ad_id)

        reason = (reason or '').strip()
        if not reason:
            raise InvalidArgument('rejection_reason', "A rejection reason is required.")
        if ad.approval_status != ApprovalStatus.PENDING:
            raise InvalidArgument('approval_status', "Only pending ads can be rejected.")

        updated = await self._apply(ad, {
            'approval_status': ApprovalStatus.REJECTED,
            'rejection_reason': reason,
            'approved_at': self._clock(),
            'approved_by': admin_id,
        })
        logger.info(f"Ad {ad_id} rejected by {admin_id}: {reason}")
        return updated

    async def renew(self, ad_id: str, days: int) -> Ad:
        """
        Republish an ad for ``days`` from now. Owners may renew approved ads, an ad
        that is pending or rejected can only be republished by an administrator.
        """
        user_id, admin = await self._caller()
        ad = self.get(ad_id)
        self._check_owner_or_admin(ad, user_id, admin)
        if ad.approval_status != ApprovalStatus.APPROVED and not admin:
            raise Forbidden("Only an administrator can republish an ad that is not approved.")
        days = self._duration(days)

        now = self._clock()
        changes = {
            'expires_at': now + timedelta(days=days),
            'is_active': True,
            'approval_status': ApprovalStatus.APPROVED,
            'rejection_reason': None,
        }
        if ad.approved_at is None:
            changes['approved_at'] = now
        updated = await self._apply(ad, changes)
        logger.info(f"Ad {ad_id} renewed for {days} days by {user_id}.")
        return updated

    async def extend(self, ad_id: str, days: int, mode: ExtendMode = ExtendMode.EXTEND) -> Ad:
        """
        Push the expiry of an ad.

        :param ad_id: Advertisement ID.
        :param days: One of the registered durations.
        :param mode: ``extend`` adds to the current expiry while the ad is live,
            ``renew`` always counts from now.
        :return: The updated ad.
        """
        user_id, admin = await self._caller()
        ad = self.get(ad_id)
        self._check_owner_or_admin(ad, user_id, admin)
        days = self._duration(days)

        now = self._clock()
        base = ad.expires_at if mode == ExtendMode.EXTEND and not ad.is_expired(now) else now
        updated = await self._apply(ad, {'expires_at': base + timedelta(days=days)})
        logger.info(f"Ad {ad_id} extended ({mode.value}) by {days} days by {user_id}.")
        return updated

    async def edit(self, ad_id: str, update: Union[AdUpdate, dict]) -> Ad:
        """
        Replace content fields of an ad. Status and expiry are left alone.
        """
        ad = self.get(ad_id)
        if ad.owner_id != self.require_user():
            raise Forbidden("Only the owner can edit this ad.")

        if not isinstance(update, AdUpdate):
            try:
                update = AdUpdate.model_validate(update)
            except ValidationError as e:
                raise ValidationFailed(translate_validation_error(e)) from None

        changes = update.changes()
        if not changes:
            return ad

        errors = validate_ad_fields(changes, partial=True)
        if errors:
            raise ValidationFailed(errors)

        updated = await self._apply(ad, canonical_content(changes))
        logger.info(f"Ad {ad_id} edited: {', '.join(changes)}.")
        return updated

    async def set_featured(self, ad_id: str, featured: bool) -> Ad:
        await self.require_admin()
        return await self._apply(self.get(ad_id), {'is_featured': featured})

    async def delete(self, ad_id: str) -> None:
        user_id, admin = await self._caller()
        self._check_owner_or_admin(self.get(ad_id), user_id, admin)
        self._ads.pop(ad_id)
        await self._store.delete_ad(ad_id)
        logger.info(f"Ad {ad_id} deleted by {user_id}.")

    async def _increment(self, ad_id: str, kind: CounterKind) -> Ad:
        ad = self.get(ad_id)
        updated = ad.model_copy(update={kind.column: getattr(ad, kind.column) + 1})
        self._ads[ad_id] = updated
        if not await self._store.increment_counter(updated, kind):
            logger.warning(f"Could not persist {kind.value} increment for ad {ad_id}.")
        return updated

    async def increment_views(self, ad_id: str) -> Ad:
        return await self._increment(ad_id, CounterKind.VIEWS)

    async def increment_calls(self, ad_id: str) -> Ad:
        return await self._increment(ad_id, CounterKind.CALLS)

    async def import_batch(self, ads: list[Ad]) -> None:
        """
        Durably insert one bulk batch, then expose it in memory. Raises when the
        durable write fails so the importer can count the batch as failed.
        """
        await self._store.insert_batch(ads)
        self._ads.update({ad.id: ad for ad in ads})

    def browse(self, criteria: Optional[AdsFilter] = None) -> list[Ad]:
        return query.filter_ads(self._ads.values(), criteria or AdsFilter(), self._clock())

    def featured(self) -> list[Ad]:
        return query.featured_ads(self._ads.values(), self._clock())

    def category_counts(self) -> dict[str, int]:
        return query.category_counts(self._ads.values(), self._clock())

    def city_counts(self) -> dict[str, int]:
        return query.city_counts(self._ads.values(), self._clock())

    def my_ads(self) -> OwnerDashboard:
        return query.owner_dashboard(self._ads.values(), self.require_user(), self._clock())

    async def moderation_queue(self, tab: ModerationTab = ModerationTab.PENDING) -> list[Ad]:
        await self.require_admin()
        return query.moderation_queue(self._ads.values(), tab)

    def find_duplicates(self, rows: list[BulkAdRow]) -> DuplicateResult:
        return query.find_duplicates(rows, self._ads.values())
