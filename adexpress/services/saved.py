"""
Per-user bookmarks: saved searches in the database, saved ads in Redis sets.
"""

from typing import Iterable, Optional

from redis import asyncio as aioredis
from sqlalchemy import select

from adexpress.database import get_session
from adexpress.models import SavedSearch
from adexpress.schemas.advertisement import Ad
from adexpress.schemas.search import AdsFilter, SavedSearchForm
from adexpress.services.user import AuthFacade
from adexpress.utils.const import CacheConfig
from adexpress.utils.exceptions import Forbidden, NotFound
from adexpress.utils.log import setup_logging
from adexpress.utils.redis import get_redis

logger = setup_logging()


def _require_user(auth: AuthFacade) -> str:
    user_id = auth.current_user_id()
    if not user_id:
        raise Forbidden("You must be signed in.")
    return user_id


class SavedSearchService:
    def __init__(self, auth: AuthFacade, session_factory=None):
        self._auth = auth
        self._session = session_factory or get_session

    async def create(self, form: SavedSearchForm) -> SavedSearch:
        """
        Save the given criteria under a name for the signed-in user.

        :param form: Name and criteria.
        :return: The stored search.
        """
        owner_id = _require_user(self._auth)
        criteria = form.criteria

        async with self._session() as session:
            saved = SavedSearch(
                owner_id=owner_id,
                name=form.name,
                search_query=criteria.search_query,
                category=criteria.category,
                city=criteria.city,
                date_filter=criteria.date_filter.value,
                sort_order=criteria.sort_order.value
            )
            session.add(saved)
            await session.commit()
            await session.refresh(saved)

        logger.info(f"Saved search '{saved.name}' created for {owner_id}.")
        return saved

    async def list_mine(self) -> list[SavedSearch]:
        owner_id = _require_user(self._auth)
        async with self._session() as session:
            result = await session.execute(
                select(SavedSearch)
                .where(SavedSearch.owner_id == owner_id)
                .order_by(SavedSearch.id.desc())
            )
            return list(result.scalars().all())

    async def delete(self, search_id: int) -> None:
        owner_id = _require_user(self._auth)
        async with self._session() as session:
            saved = await session.get(SavedSearch, search_id)
            if not saved:
                raise NotFound(str(search_id), what="Saved search")
            if saved.owner_id != owner_id:
                raise Forbidden("You can only delete your own saved searches.")
            await session.delete(saved)
            await session.commit()

    @staticmethod
    def criteria(saved: SavedSearch) -> AdsFilter:
        return AdsFilter(
            search_query=saved.search_query,
            category=saved.category,
            city=saved.city,
            date_filter=saved.date_filter,
            sort_order=saved.sort_order
        )


class SavedAdService:
    def __init__(self, auth: AuthFacade, redis_client: Optional[aioredis.Redis] = None):
        self._auth = auth
        self._redis = redis_client

    async def _redis_client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    def _key(self) -> str:
        return CacheConfig.SAVED_ADS_KEY.format(user_id=_require_user(self._auth))

    async def toggle(self, ad_id: str) -> bool:
        """
        Save or unsave an ad.

        :param ad_id: Advertisement ID.
        :return: True when the ad is saved afterwards.
        """
        key = self._key()
        redis_client = await self._redis_client()
        if await redis_client.sismember(key, ad_id):
            await redis_client.srem(key, ad_id)
            return False
        await redis_client.sadd(key, ad_id)
        return True

    async def saved_ids(self) -> set[str]:
        redis_client = await self._redis_client()
        members = await redis_client.smembers(self._key())
        return {member.decode() if isinstance(member, bytes) else member for member in members}

    async def saved_ads(self, ads: Iterable[Ad]) -> list[Ad]:
        """
        Resolve the saved ids against the known ads; ids of ads that no longer exist are skipped.
        """
        by_id = {ad.id: ad for ad in ads}
        ids = await self.saved_ids()
        return sorted((by_id[ad_id] for ad_id in ids if ad_id in by_id), key=lambda ad: ad.created_at, reverse=True)
