"""
Persistence facade: a durable SQL store with a Redis mirror in front of it.

Single-ad writes are best effort on both tiers; a failed durable write is logged
as ``PersistenceDegraded`` and the caller still sees success because the
in-memory state and the mirror already carry the intended result.
"""

import asyncio
import json
from enum import Enum
from typing import Awaitable, Callable, Iterable, Optional, Protocol

from redis import asyncio as aioredis
from sqlalchemy import delete, select, update

from adexpress.database import get_session
from adexpress.models import Advertisement
from adexpress.schemas.advertisement import Ad, backfill_approval_status
from adexpress.utils.const import CacheConfig
from adexpress.utils.enums import ApprovalStatus, CounterKind
from adexpress.utils.exceptions import PersistenceDegraded
from adexpress.utils.log import setup_logging
from adexpress.utils.redis import get_redis

logger = setup_logging()

ChangeCallback = Callable[[dict], Awaitable[None]]


def _column_values(data: dict) -> dict:
    return {key: value.value if isinstance(value, Enum) else value for key, value in data.items()}


def _ad_from_record(record: dict) -> Ad:
    return Ad.model_validate(backfill_approval_status(record))


class AdStore(Protocol):
    async def list_ads(self) -> list[Ad]: ...

    async def insert_ad(self, ad: Ad) -> None: ...

    async def insert_batch(self, ads: list[Ad]) -> None: ...

    async def update_ad(self, ad: Ad, changes: dict) -> None: ...

    async def delete_ad(self, ad_id: str) -> None: ...

    async def increment_counter(self, ad: Ad, kind: CounterKind) -> bool: ...

    def subscribe_changes(self, callback: ChangeCallback) -> None: ...


class AtomicCounter:
    """
    Adds one inside the database, concurrent increments are never lost.
    """

    def __init__(self, session_factory=None):
        self._session = session_factory or get_session

    async def increment(self, ad_id: str, kind: CounterKind) -> bool:
        column = getattr(Advertisement, kind.column)
        async with self._session() as session:
            result = await session.execute(
                update(Advertisement)
                .where(Advertisement.id == ad_id)
                .values({kind.column: column + 1})
            )
            await session.commit()
            return result.rowcount > 0


class BestEffortCounter:
    """
    Read-then-write increment. Racy under concurrent viewers, counts are analytics only.
    """

    def __init__(self, session_factory=None):
        self._session = session_factory or get_session

    async def increment(self, ad_id: str, kind: CounterKind) -> bool:
        column = getattr(Advertisement, kind.column)
        async with self._session() as session:
            current = (await session.execute(
                select(column)
                .where(Advertisement.id == ad_id)
            )).scalar_one_or_none()

            if current is None:
                return False

            await session.execute(
                update(Advertisement)
                .where(Advertisement.id == ad_id)
                .values({kind.column: current + 1})
            )
            await session.commit()
            return True


class DatabaseAdStore:
    """
    Durable tier. Every method raises on failure, the two-tier store decides what to swallow.
    """

    def __init__(self, session_factory=None):
        self._session = session_factory or get_session

    def counters(self) -> list:
        return [AtomicCounter(self._session), BestEffortCounter(self._session)]

    async def migrate(self) -> int:
        """
        Backfill the approval status of rows written before moderation existed.

        :return: Number of rows updated.
        """
        async with self._session() as session:
            result = await session.execute(
                update(Advertisement)
                .where(Advertisement.approval_status.is_(None))
                .values(approval_status=ApprovalStatus.APPROVED.value)
            )
            await session.commit()
            if result.rowcount:
                logger.info(f"Backfilled approval status on {result.rowcount} legacy advertisements.")
            return result.rowcount

    async def list_ads(self) -> list[Ad]:
        async with self._session() as session:
            result = await session.execute(
                select(Advertisement)
                .order_by(Advertisement.created_at.desc())
            )
            return [_ad_from_record(row.to_dict()) for row in result.scalars().all()]

    async def insert_ad(self, ad: Ad) -> None:
        await self.insert_batch([ad])

    async def insert_batch(self, ads: list[Ad]) -> None:
        async with self._session() as session:
            session.add_all([Advertisement.from_dict(_column_values(dict(ad))) for ad in ads])
            await session.commit()

    async def update_ad(self, ad_id: str, changes: dict) -> None:
        async with self._session() as session:
            await session.execute(
                update(Advertisement)
                .where(Advertisement.id == ad_id)
                .values(_column_values(changes))
            )
            await session.commit()

    async def delete_ad(self, ad_id: str) -> None:
        async with self._session() as session:
            await session.execute(
                delete(Advertisement)
                .where(Advertisement.id == ad_id)
            )
            await session.commit()


class RedisAdMirror:
    """
    Local tier: a Redis hash of ad id to JSON record.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None, key: str = CacheConfig.LOCAL_ADS_KEY):
        self._client = client
        self._key = key

    async def _redis(self) -> aioredis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    async def list_ads(self) -> list[Ad]:
        redis_client = await self._redis()
        records = await redis_client.hgetall(self._key)

        ads = []
        for ad_id, payload in records.items():
            try:
                ads.append(_ad_from_record(json.loads(payload)))
            except ValueError as e:
                logger.warning(f"Dropping unreadable mirrored ad {ad_id!r}: {e}")
        return ads

    async def put(self, *ads: Ad) -> None:
        if not ads:
            return
        redis_client = await self._redis()
        await redis_client.hset(self._key, mapping={ad.id: json.dumps(ad.to_dict()) for ad in ads})

    async def remove(self, ad_id: str) -> None:
        redis_client = await self._redis()
        await redis_client.hdel(self._key, ad_id)


class ChangeFeed:
    """
    Change notification over Redis pub/sub. Every durable write publishes an event,
    every subscriber callback runs for every event, including our own.
    """

    def __init__(self, client: Optional[aioredis.Redis] = None, channel: str = CacheConfig.CHANGES_CHANNEL):
        self._client = client
        self._channel = channel
        self._callbacks: list[ChangeCallback] = []

    async def _redis(self) -> aioredis.Redis:
        if self._client is None:
            self._client = await get_redis()
        return self._client

    def subscribe(self, callback: ChangeCallback) -> None:
        self._callbacks.append(callback)

    async def publish(self, event: str, ad_id: Optional[str] = None) -> None:
        redis_client = await self._redis()
        await redis_client.publish(self._channel, json.dumps({'event': event, 'id': ad_id}))

    async def dispatch(self, message: dict) -> None:
        for callback in self._callbacks:
            try:
                await callback(message)
            except Exception as e:
                logger.error(f"Change callback failed: {e}")

    async def listen(self) -> None:
        """
        Forward published events to the subscribers until cancelled.
        """
        redis_client = await self._redis()
        pubsub = redis_client.pubsub()
        await pubsub.subscribe(self._channel)
        try:
            async for message in pubsub.listen():
                if message.get('type') != 'message':
                    continue
                await self.dispatch(json.loads(message['data']))
        except asyncio.CancelledError:
            logger.debug("Change feed listener stopped.")
            raise
        finally:
            await pubsub.unsubscribe(self._channel)
            await pubsub.aclose()


class TwoTierAdStore:
    """
    Remote store plus local mirror.

    Reads merge both tiers, remote records win by id and mirror-only records are appended.
    When the remote tier is unreachable the mirror alone is returned.
    """

    def __init__(
            self,
            remote: DatabaseAdStore,
            mirror: RedisAdMirror,
            feed: Optional[ChangeFeed] = None,
            counters: Optional[Iterable] = None
    ):
        self._remote = remote
        self._mirror = mirror
        self._feed = feed
        self._counters = list(counters) if counters is not None else remote.counters()

    @staticmethod
    async def _best_effort(operation: str, action: Awaitable) -> bool:
        try:
            await action
            return True
        except Exception as e:
            logger.warning(str(PersistenceDegraded(operation, e)))
            return False

    async def _notify(self, event: str, ad_id: Optional[str] = None) -> None:
        if self._feed is not None:
            await self._best_effort(f"publish {event}", self._feed.publish(event, ad_id))

    async def list_ads(self) -> list[Ad]:
        try:
            local = await self._mirror.list_ads()
        except Exception as e:
            logger.warning(f"Local mirror unavailable: {e}")
            local = []

        try:
            remote = await self._remote.list_ads()
        except Exception as e:
            logger.warning(f"Remote store unavailable, serving {len(local)} mirrored ads: {e}")
            return local

        remote_ids = {ad.id for ad in remote}
        merged = remote + [ad for ad in local if ad.id not in remote_ids]
        logger.debug(f"Loaded {len(remote)} remote and {len(merged) - len(remote)} local-only ads.")
        return merged

    async def insert_ad(self, ad: Ad) -> None:
        await self._best_effort("mirror insert", self._mirror.put(ad))
        if await self._best_effort("insert", self._remote.insert_ad(ad)):
            await self._notify("insert", ad.id)

    async def insert_batch(self, ads: list[Ad]) -> None:
        """
        Durable batch insert. Unlike the single-ad writes this raises, the importer
        needs to know which batch failed.
        """
        await self._remote.insert_batch(ads)
        await self._best_effort("mirror batch insert", self._mirror.put(*ads))
        await self._notify("insert")

    async def update_ad(self, ad: Ad, changes: dict) -> None:
        await self._best_effort("mirror update", self._mirror.put(ad))
        if await self._best_effort("update", self._remote.update_ad(ad.id, changes)):
            await self._notify("update", ad.id)

    async def delete_ad(self, ad_id: str) -> None:
        await self._best_effort("mirror delete", self._mirror.remove(ad_id))
        if await self._best_effort("delete", self._remote.delete_ad(ad_id)):
            await self._notify("delete", ad_id)

    async def increment_counter(self, ad: Ad, kind: CounterKind) -> bool:
        await self._best_effort("mirror counter", self._mirror.put(ad))
        for counter in self._counters:
            try:
                if await counter.increment(ad.id, kind):
                    return True
            except Exception as e:
                logger.warning(f"{type(counter).__name__} failed for {ad.id}: {e}")
        return False

    def subscribe_changes(self, callback: ChangeCallback) -> None:
        if self._feed is not None:
            self._feed.subscribe(callback)
