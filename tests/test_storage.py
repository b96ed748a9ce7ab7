"""Two-tier persistence: merge rule, degraded writes, counters and legacy records."""

import asyncio
import json
import logging

import pytest
from sqlalchemy import select, update

from adexpress.models import Advertisement
from adexpress.services.advertisement import AdvertisementService
from adexpress.services.storage import (
    AtomicCounter,
    BestEffortCounter,
    DatabaseAdStore,
    TwoTierAdStore,
)
from adexpress.utils.const import CacheConfig
from adexpress.utils.enums import ApprovalStatus, CounterKind


class UnreachableDatabase(DatabaseAdStore):
    async def list_ads(self):
        raise ConnectionError("database is down")

    async def insert_ad(self, ad):
        raise ConnectionError("database is down")

    async def update_ad(self, ad_id, changes):
        raise ConnectionError("database is down")


class BrokenCounter:
    async def increment(self, ad_id, kind):
        raise RuntimeError("rpc missing")


# ── merge rule ──

async def test_remote_wins_and_local_only_records_are_kept(store, database, mirror, make_ad):
    shared = make_ad(title='Remote title here')
    local_only = make_ad(title='Only in the mirror')
    await database.insert_ad(shared)
    await mirror.put(shared.model_copy(update={'title': 'Stale local title'}), local_only)

    ads = await store.list_ads()

    assert [ad.id for ad in ads] == [shared.id, local_only.id]
    assert ads[0].title == 'Remote title here'


async def test_unreachable_remote_serves_the_mirror(session_factory, mirror, make_ad):
    ad = make_ad()
    await mirror.put(ad)
    store = TwoTierAdStore(UnreachableDatabase(session_factory), mirror)

    assert await store.list_ads() == [ad]


# ── degraded writes ──

async def test_failed_remote_write_is_logged_not_raised(session_factory, mirror, make_ad, caplog):
    store = TwoTierAdStore(UnreachableDatabase(session_factory), mirror)
    ad = make_ad()

    with caplog.at_level(logging.WARNING, logger="adexpress"):
        await store.insert_ad(ad)

    assert "was not persisted remotely" in caplog.text
    assert await mirror.list_ads() == [ad]


async def test_service_reports_success_when_remote_is_down(session_factory, mirror, auth, clock, make_ad):
    store = TwoTierAdStore(UnreachableDatabase(session_factory), mirror)
    service = AdvertisementService(store, auth, clock)
    await mirror.put(make_ad(approval_status=ApprovalStatus.PENDING, id='ad-1'))
    await service.refresh()

    auth.login('admin')
    approved = await service.approve('ad-1')

    assert approved.approval_status == ApprovalStatus.APPROVED
    assert (await mirror.list_ads())[0].approval_status == ApprovalStatus.APPROVED


async def test_batch_insert_raises_on_remote_failure(session_factory, mirror, make_ad):
    class FailingBatches(DatabaseAdStore):
        async def insert_batch(self, ads):
            raise ConnectionError("database is down")

    store = TwoTierAdStore(FailingBatches(session_factory), mirror)
    with pytest.raises(ConnectionError):
        await store.insert_batch([make_ad()])
    assert await mirror.list_ads() == []


# ── counters ──

async def test_atomic_counter_adds_in_the_database(session_factory, database, make_ad):
    ad = make_ad()
    await database.insert_ad(ad)
    counter = AtomicCounter(session_factory)

    for _ in range(3):
        assert await counter.increment(ad.id, CounterKind.VIEWS)

    assert (await database.list_ads())[0].views_count == 3


async def test_atomic_counter_keeps_concurrent_increments(locked_session_factory, make_ad):
    database = DatabaseAdStore(locked_session_factory)
    ad = make_ad()
    await database.insert_ad(ad)

    counter = AtomicCounter(locked_session_factory)
    results = await asyncio.gather(*(counter.increment(ad.id, CounterKind.CALLS) for _ in range(15)))

    assert all(results)
    assert (await database.list_ads())[0].calls_count == 15


async def test_counters_report_missing_rows(session_factory):
    assert not await AtomicCounter(session_factory).increment('missing', CounterKind.CALLS)
    assert not await BestEffortCounter(session_factory).increment('missing', CounterKind.CALLS)


async def test_store_falls_back_to_best_effort_counter(session_factory, database, mirror, make_ad):
    ad = make_ad()
    await database.insert_ad(ad)
    store = TwoTierAdStore(database, mirror, counters=[BrokenCounter(), BestEffortCounter(session_factory)])

    assert await store.increment_counter(ad.model_copy(update={'calls_count': 1}), CounterKind.CALLS)
    assert (await database.list_ads())[0].calls_count == 1


async def test_counter_failure_is_reported(session_factory, database, mirror, make_ad):
    store = TwoTierAdStore(database, mirror, counters=[BrokenCounter()])
    assert not await store.increment_counter(make_ad(), CounterKind.VIEWS)


# ── legacy records ──

async def test_missing_status_loads_as_approved(session_factory, database, make_ad):
    await database.insert_ad(make_ad(id='legacy'))
    async with session_factory() as session:
        await session.execute(
            update(Advertisement)
            .where(Advertisement.id == 'legacy')
            .values(approval_status=None)
        )
        await session.commit()

    assert (await database.list_ads())[0].approval_status == ApprovalStatus.APPROVED

    assert await database.migrate() == 1
    async with session_factory() as session:
        status = (await session.execute(
            select(Advertisement.approval_status).where(Advertisement.id == 'legacy')
        )).scalar_one()
    assert status == ApprovalStatus.APPROVED.value
    assert await database.migrate() == 0


async def test_mirror_backfills_and_skips_garbage(redis_client, mirror, make_ad):
    record = make_ad(id='old').to_dict()
    del record['approval_status']
    await redis_client.hset(CacheConfig.LOCAL_ADS_KEY, mapping={'old': json.dumps(record), 'bad': 'not json'})

    ads = await mirror.list_ads()
    assert [(ad.id, ad.approval_status) for ad in ads] == [('old', ApprovalStatus.APPROVED)]


# ── change feed ──

async def test_remote_change_triggers_refresh(store, database, feed, auth, clock, make_ad):
    service = AdvertisementService(store, auth, clock)
    ad = make_ad()
    await database.insert_ad(ad)
    assert service.ads == []

    await feed.dispatch({'event': 'insert', 'id': ad.id})

    assert service.get(ad.id).id == ad.id
