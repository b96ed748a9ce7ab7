"""Bulk import: file parsing, row accounting, duplicates, batched commit and history."""

import io
from datetime import timedelta

import pytest
from openpyxl import Workbook

from conftest import T0, VALID_FORM
from adexpress.schemas.bulk import UploadHistoryItem
from adexpress.services.advertisement import AdvertisementService
from adexpress.services.bulk_import import (
    BulkImportSession,
    get_upload_history,
    parse_file,
    record_upload,
)
from adexpress.services.export import generate_template
from adexpress.services.storage import TwoTierAdStore
from adexpress.utils.enums import AdCategory, ApprovalStatus, ImportStage
from adexpress.utils.exceptions import EmptyInput, Forbidden, InvalidStage, UnsupportedFormat

HEADER = ' Title ,Subject,DESCRIPTION,Phone_Number,category,city,location,duration_days,is_featured,sub_description'
DESCRIPTION = '"Own bike required, fuel allowance and weekly payouts."'


def good_row(title='Delivery riders needed', phone='91234 56780', category='Jobs', city='mumbai',
             duration='', featured='yes'):
    return f'{title},Immediate joining,{DESCRIPTION},{phone},{category},{city},Andheri,{duration},{featured},'


def csv_file(*rows, bom=False) -> bytes:
    text = '\n'.join((HEADER,) + rows) + '\n'
    return (('\ufeff' if bom else '') + text).encode('utf-8')


def numbered_rows(count):
    return [good_row(title=f'Delivery riders needed {index}') for index in range(count)]


class FlakyStore(TwoTierAdStore):
    """Fails the second durable batch."""

    calls = 0

    async def insert_batch(self, ads):
        self.calls += 1
        if self.calls == 2:
            raise ConnectionError("database is down")
        await super().insert_batch(ads)


# ── parsing ──

def test_csv_rows_are_normalised():
    result = parse_file('ads.csv', csv_file(good_row(), bom=True))

    assert result.errors == []
    row = result.data[0]
    assert row.row == 2
    assert row.category == 'jobs'
    assert row.city == 'Mumbai'
    assert row.phone_number == '9123456780'
    assert row.description == 'Own bike required, fuel allowance and weekly payouts.'
    assert row.duration_days == 30
    assert row.is_featured is True
    assert row.sub_description is None


def test_row_numbers_follow_the_file():
    content = csv_file(
        good_row(),
        good_row(category='realestate'),
        '',
        good_row(phone='12345', duration='45'),
    )
    result = parse_file('ads.CSV', content)

    assert result.total_rows == 3
    assert len(result.data) + len(result.error_rows) == result.total_rows
    assert result.error_rows == {3, 5}
    assert all(error.row >= 2 for error in result.errors)
    assert {error.field for error in result.errors if error.row == 5} == {'phone_number', 'duration_days'}
    category_error = next(error for error in result.errors if error.row == 3)
    assert 'Valid options' in category_error.message


def test_xlsx_cells_are_read_as_text():
    workbook = Workbook()
    sheet = workbook.active
    sheet.append(['title', 'subject', 'description', 'phone_number', 'category', 'city',
                  'duration_days', 'is_featured'])
    sheet.append(['Delivery riders needed', 'Immediate joining',
                  'Own bike required, fuel allowance and weekly payouts.', 9123456780, 'JOBS', 'Pune', 60.0, True])
    sheet.append(['Maths tutor available', 'Classes 8 to 10',
                  'Experienced tutor for board exam preparation.', 9876543210, 'realestate', 'Pune', 7, 'no'])
    buffer = io.BytesIO()
    workbook.save(buffer)

    result = parse_file('upload.xlsx', buffer.getvalue())

    assert result.total_rows == 2
    assert [(row.row, row.phone_number, row.duration_days, row.is_featured) for row in result.data] == [
        (2, '9123456780', 60, True)
    ]
    assert result.error_rows == {3}


def test_template_parses_cleanly():
    result = parse_file('bulk_ads_template.xlsx', generate_template())
    assert result.total_rows == 2
    assert result.errors == []


@pytest.mark.parametrize('file_name', ['ads.xls', 'ads.txt', 'ads', 'ads.json'])
def test_unsupported_extension(file_name):
    with pytest.raises(UnsupportedFormat):
        parse_file(file_name, csv_file(good_row()))


def test_unreadable_spreadsheet():
    with pytest.raises(UnsupportedFormat):
        parse_file('ads.xlsx', b'definitely not a zip file')


@pytest.mark.parametrize('content', [b'', HEADER.encode() + b'\n', HEADER.encode() + b'\n\n\n'])
def test_empty_input(content):
    with pytest.raises(EmptyInput):
        parse_file('ads.csv', content)


# ── session ──

async def test_load_moves_to_preview_and_flags_duplicates(service, auth):
    auth.login('admin')
    existing = await service.submit(
        {**VALID_FORM, 'title': 'Delivery riders needed', 'phone_number': '9123456780'}, auto_approve=True
    )
    session = BulkImportSession(service)

    result = await session.load('ads.csv', csv_file(good_row(), good_row(title='Cooks wanted urgently')))

    assert session.stage == ImportStage.PREVIEW
    assert [(entry.row, entry.existing_ad_id) for entry in result.duplicates] == [(2, existing.id)]
    assert [row.row for row in result.clean_data] == [3]


async def test_failed_load_stays_in_select(service):
    session = BulkImportSession(service)
    with pytest.raises(UnsupportedFormat):
        await session.load('ads.xls', b'')
    assert session.stage == ImportStage.SELECT


async def test_reset_only_from_preview(service):
    session = BulkImportSession(service)
    with pytest.raises(InvalidStage):
        session.reset()

    await session.load('ads.csv', csv_file(good_row()))
    session.reset()
    assert session.stage == ImportStage.SELECT
    assert session.parsed is None


async def test_commit_writes_batches_in_order(service, redis_client, auth, clock):
    auth.login('admin')
    session = BulkImportSession(service, redis_client, batch_size=2)
    await session.load('ads.csv', csv_file(*numbered_rows(5)))
    seen = []

    report = await session.commit(on_progress=seen.append)

    assert session.stage == ImportStage.DONE
    assert report.uploaded == 5
    assert report.failed == 0
    assert report.progress == seen == [33, 66, 100]
    assert len(service.ads) == 5
    for ad in service.ads:
        assert ad.approval_status == ApprovalStatus.APPROVED
        assert ad.created_at == ad.approved_at == clock()
        assert ad.expires_at == clock() + timedelta(days=30)
        assert ad.category == AdCategory.JOBS
        assert ad.owner_id == 'admin'
        assert ad.is_publicly_visible(clock())

    history = await get_upload_history(redis_client)
    assert [(item.file_name, item.total_uploaded, item.timestamp) for item in history] == [('ads.csv', 5, T0)]


async def test_failed_batch_does_not_roll_back_others(database, mirror, feed, redis_client, auth, clock):
    service = AdvertisementService(FlakyStore(database, mirror, feed), auth, clock)
    auth.login('admin')
    session = BulkImportSession(service, redis_client, batch_size=2)
    await session.load('ads.csv', csv_file(*numbered_rows(5)))

    report = await session.commit()

    assert report.uploaded == 3
    assert report.failed == 2
    assert report.failed_batches == [2]
    assert report.progress == [33, 66, 100]
    assert len(await database.list_ads()) == 3
    assert len(service.ads) == 3


async def test_commit_requires_admin(service, redis_client, auth):
    auth.login('owner')
    session = BulkImportSession(service, redis_client)
    await session.load('ads.csv', csv_file(good_row()))

    with pytest.raises(Forbidden):
        await session.commit()
    assert session.stage == ImportStage.PREVIEW


async def test_commit_without_clean_rows(service, redis_client, auth):
    auth.login('admin')
    session = BulkImportSession(service, redis_client)
    await session.load('ads.csv', csv_file(good_row(category='realestate')))

    with pytest.raises(EmptyInput):
        await session.commit()


async def test_commit_twice_is_rejected(service, redis_client, auth):
    auth.login('admin')
    session = BulkImportSession(service, redis_client)
    await session.load('ads.csv', csv_file(good_row()))
    await session.commit()

    with pytest.raises(InvalidStage):
        await session.commit()
    with pytest.raises(InvalidStage):
        session.reset()


async def test_error_report_of_loaded_file(service):
    session = BulkImportSession(service)
    with pytest.raises(InvalidStage):
        session.error_report()

    await session.load('ads.csv', csv_file(good_row(), good_row(city='Atlantis')))
    assert session.error_report() == 'Row,Field,Error Message\n"3","city","Invalid city name"\n'


async def test_history_keeps_the_newest_ten(redis_client):
    for index in range(12):
        await record_upload(UploadHistoryItem(
            id=str(index), timestamp=T0 + timedelta(minutes=index), total_uploaded=index, file_name=f'{index}.csv'
        ), redis_client)

    history = await get_upload_history(redis_client)
    assert [item.id for item in history] == [str(index) for index in range(11, 1, -1)]
