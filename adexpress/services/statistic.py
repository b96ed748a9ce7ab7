import json
from collections import Counter
from datetime import datetime
from typing import Iterable, Optional

from redis import asyncio as aioredis

from adexpress.database import get_session
from adexpress.models import Statistic
from adexpress.schemas.advertisement import Ad
from adexpress.utils.const import CATEGORIES, CacheConfig
from adexpress.utils.enums import ApprovalStatus
from adexpress.utils.log import setup_logging
from adexpress.utils.redis import get_redis

logger = setup_logging()


class StatisticService:
    """
    Services for the admin statistics, kept in a single ``statistics`` row and cached in Redis.
    """

    POPULAR_LIMIT = 5

    def __init__(self, session_factory=None, redis_client: Optional[aioredis.Redis] = None):
        self._session = session_factory or get_session
        self._redis = redis_client

    async def _redis_client(self) -> aioredis.Redis:
        if self._redis is None:
            self._redis = await get_redis()
        return self._redis

    @classmethod
    def compute(cls, ads: Iterable[Ad], now: datetime) -> dict:
        """
        Compute the statistics of an ad set.

        :param ads: Every known ad.
        :param now: Reference time for expiry.
        :return: Counter name to value, ``popular_categories`` being a list.
        """
        ads = list(ads)
        statuses = Counter(ad.approval_status for ad in ads)
        categories = Counter(ad.category for ad in ads)

        return {
            'total_advertisements': len(ads),
            'pending_advertisements': statuses[ApprovalStatus.PENDING],
            'approved_advertisements': statuses[ApprovalStatus.APPROVED],
            'rejected_advertisements': statuses[ApprovalStatus.REJECTED],
            'active_advertisements': sum(1 for ad in ads if ad.is_publicly_visible(now)),
            'expired_advertisements': sum(1 for ad in ads if ad.is_expired(now)),
            'total_views': sum(ad.views_count for ad in ads),
            'total_calls': sum(ad.calls_count for ad in ads),
            'popular_categories': [
                {
                    'category': category.value,
                    'category_name': CATEGORIES[category]['label'],
                    'icon': CATEGORIES[category]['icon'],
                    'ad_count': count,
                }
                for category, count in categories.most_common(cls.POPULAR_LIMIT)
            ],
        }

    async def update_all_statistics(self, ads: Iterable[Ad], now: datetime) -> dict:
        stats = self.compute(ads, now)

        async with self._session() as session:
            statistic = await session.get(Statistic, 1)
            if not statistic:
                statistic = Statistic(id=1, **stats)
                session.add(statistic)
            else:
                for field, value in stats.items():
                    setattr(statistic, field, value)
            await session.commit()

        try:
            await self.reset_statistics_cache()
        except Exception as e:
            logger.error(f"Error resetting statistics cache: {e}")

        return stats

    async def get_full_statistics(self) -> dict:
        redis_client = await self._redis_client()
        cached_stats = await redis_client.get(CacheConfig.STATISTICS_KEY)
        if cached_stats:
            return json.loads(cached_stats)

        async with self._session() as session:
            statistic = await session.get(Statistic, 1)
            if not statistic:
                return {}

            stats_dict = statistic.to_dict()

        await redis_client.set(CacheConfig.STATISTICS_KEY, json.dumps(stats_dict), ex=CacheConfig.TTL)

        return stats_dict

    async def reset_statistics_cache(self) -> None:
        """
        Reset the statistics cache in Redis.
        """
        redis_client = await self._redis_client()
        await redis_client.delete(CacheConfig.STATISTICS_KEY)
