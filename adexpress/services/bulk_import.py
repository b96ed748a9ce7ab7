"""
Bulk import of ads from a CSV or XLSX upload.

The session walks ``select -> preview -> uploading -> done``; the only way back is
``reset()`` from the preview. Rows are numbered as in the spreadsheet, the header
being row 1.
"""

import csv
import io
import os
from datetime import datetime, timedelta
from typing import Callable, Iterator, Optional
from uuid import uuid4
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException
from redis import asyncio as aioredis

from adexpress.schemas.advertisement import Ad
from adexpress.schemas.bulk import BulkAdRow, DuplicateResult, ImportReport, ParseResult, UploadHistoryItem
from adexpress.services.advertisement import AdvertisementService
from adexpress.services.export import build_error_report
from adexpress.utils.const import BulkImportConfig, CacheConfig
from adexpress.utils.enums import AdCategory, ApprovalStatus, ImportStage
from adexpress.utils.exceptions import EmptyInput, InvalidStage, UnsupportedFormat
from adexpress.utils.log import setup_logging
from adexpress.utils.redis import get_redis
from adexpress.utils.validators import (
    normalize_city,
    normalize_phone,
    parse_duration,
    parse_featured,
    validate_bulk_row,
)

logger = setup_logging()

RawRow = dict[str, str]


def file_extension(file_name: str) -> str:
    return os.path.splitext(file_name or '')[1].lstrip('.').lower()


def _cell_text(value) -> str:
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _rows_with_header(records: Iterator[list[str]]) -> list[tuple[int, RawRow]]:
    header = None
    rows = []
    for number, cells in enumerate(records, start=1):
        if not any(cells):
            continue
        if header is None:
            header = [cell.strip().lower() for cell in cells]
            continue
        rows.append((number, {name: value for name, value in zip(header, cells) if name}))
    return rows


def _read_csv(content: bytes) -> list[tuple[int, RawRow]]:
    try:
        text = content.decode('utf-8-sig')
    except UnicodeDecodeError:
        raise UnsupportedFormat("CSV files must be UTF-8 encoded.") from None
    reader = csv.reader(io.StringIO(text))
    return _rows_with_header([cell.strip() for cell in record] for record in reader)


def _read_xlsx(content: bytes) -> list[tuple[int, RawRow]]:
    try:
        workbook = load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (BadZipFile, InvalidFileException, KeyError) as e:
        raise UnsupportedFormat(f"Could not read the spreadsheet: {e}") from None

    try:
        sheet = workbook.worksheets[0]
        records = ([_cell_text(cell) for cell in record] for record in sheet.iter_rows(values_only=True))
        return _rows_with_header(records)
    finally:
        workbook.close()


def read_rows(file_name: str, content: bytes) -> list[tuple[int, RawRow]]:
    """
    Read the data rows of an upload.

    :param file_name: Original file name, only its extension matters.
    :param content: Raw file bytes.
    :return: ``(row number, lower-cased header -> cell text)`` for every non-blank data row.
    """
    extension = file_extension(file_name)
    if extension in BulkImportConfig.CSV_EXTENSIONS:
        rows = _read_csv(content)
    elif extension in BulkImportConfig.EXCEL_EXTENSIONS:
        rows = _read_xlsx(content)
    else:
        raise UnsupportedFormat(f"Unsupported file type '.{extension}'. Please upload a CSV or XLSX file.")

    if not rows:
        raise EmptyInput("The file contains no data rows.")
    return rows


def normalize_row(raw: RawRow, row_number: int) -> BulkAdRow:
    """
    Build the import row of an already validated raw row.
    """
    duration = (raw.get('duration_days') or '').strip()
    return BulkAdRow(
        row=row_number,
        title=raw.get('title', '').strip(),
        subject=raw.get('subject', '').strip(),
        description=raw.get('description', '').strip(),
        sub_description=(raw.get('sub_description') or '').strip() or None,
        phone_number=normalize_phone(raw.get('phone_number', '')),
        category=raw.get('category', '').strip().lower(),
        city=normalize_city(raw.get('city')),
        location=(raw.get('location') or '').strip() or None,
        duration_days=parse_duration(duration) if duration else BulkImportConfig.DEFAULT_DURATION_DAYS,
        is_featured=parse_featured(raw.get('is_featured')),
    )


def parse_file(file_name: str, content: bytes) -> ParseResult:
    """
    Parse and validate an upload. Bad rows never stop the parse, their errors are collected.

    :param file_name: Original file name.
    :param content: Raw file bytes.
    :return: Clean rows, row errors and the number of data rows read.
    """
    rows = read_rows(file_name, content)
    result = ParseResult(total_rows=len(rows))

    for row_number, raw in rows:
        errors = validate_bulk_row(raw, row_number)
        if errors:
            result.errors.extend(errors)
        else:
            result.data.append(normalize_row(raw, row_number))

    logger.info(
        f"Parsed {file_name}: {len(result.data)} valid of {result.total_rows} rows, {len(result.errors)} errors."
    )
    return result


def convert_to_ads(rows: list[BulkAdRow], owner_id: str, now: datetime) -> list[Ad]:
    """
    Turn clean rows into published ads. Bulk imports skip moderation.
    """
    return [
        Ad(
            id=str(uuid4()),
            owner_id=owner_id,
            title=row.title,
            subject=row.subject,
            description=row.description,
            sub_description=row.sub_description,
            phone_number=row.phone_number,
            category=AdCategory(row.category),
            city=row.city,
            location=row.location,
            created_at=now,
            expires_at=now + timedelta(days=row.duration_days),
            approved_at=now,
            approved_by=owner_id,
            approval_status=ApprovalStatus.APPROVED,
            is_featured=row.is_featured,
        )
        for row in rows
    ]


async def get_upload_history(redis_client: Optional[aioredis.Redis] = None) -> list[UploadHistoryItem]:
    redis_client = redis_client or await get_redis()
    records = await redis_client.lrange(CacheConfig.UPLOAD_HISTORY_KEY, 0, -1)
    return [UploadHistoryItem.model_validate_json(record) for record in records]


async def record_upload(item: UploadHistoryItem, redis_client: Optional[aioredis.Redis] = None) -> None:
    """
    Prepend an upload to the history, keeping only the newest entries.
    """
    redis_client = redis_client or await get_redis()
    await redis_client.lpush(CacheConfig.UPLOAD_HISTORY_KEY, item.model_dump_json())
    await redis_client.ltrim(CacheConfig.UPLOAD_HISTORY_KEY, 0, BulkImportConfig.HISTORY_LIMIT - 1)


class BulkImportSession:
    """
    One import attempt by an administrator.
    """

    def __init__(
            self,
            service: AdvertisementService,
            redis_client: Optional[aioredis.Redis] = None,
            batch_size: int = BulkImportConfig.BATCH_SIZE
    ):
        self._service = service
        self._redis = redis_client
        self._batch_size = batch_size
        self.stage = ImportStage.SELECT
        self.file_name: Optional[str] = None
        self.parsed: Optional[ParseResult] = None
        self.duplicates: Optional[DuplicateResult] = None
        self.report: Optional[ImportReport] = None

    def _expect(self, stage: ImportStage, action: str) -> None:
        if self.stage != stage:
            raise InvalidStage(f"Cannot {action} while in the {self.stage.value} stage.")

    async def load(self, file_name: str, content: bytes) -> DuplicateResult:
        """
        Parse an upload and check it against the existing ads.

        :param file_name: Original file name.
        :param content: Raw file bytes.
        :return: Duplicates and the rows ready for import.
        """
        self._expect(ImportStage.SELECT, "load a file")
        parsed = parse_file(file_name, content)

        self.file_name = file_name
        self.parsed = parsed
        self.duplicates = self._service.find_duplicates(parsed.data)
        self.stage = ImportStage.PREVIEW
        if self.duplicates.duplicates:
            logger.info(f"{len(self.duplicates.duplicates)} rows of {file_name} duplicate existing ads.")
        return self.duplicates

    def reset(self) -> None:
        self._expect(ImportStage.PREVIEW, "go back to file selection")
        self.file_name = None
        self.parsed = None
        self.duplicates = None
        self.stage = ImportStage.SELECT

    def error_report(self) -> str:
        if self.parsed is None:
            raise InvalidStage("No file has been loaded.")
        return build_error_report(self.parsed.errors)

    def _batches(self, ads: list[Ad]) -> Iterator[list[Ad]]:
        for start in range(0, len(ads), self._batch_size):
            yield ads[start:start + self._batch_size]

    async def commit(self, on_progress: Optional[Callable[[int], None]] = None) -> ImportReport:
        """
        Write the clean rows in fixed-size batches, in order.

        A failed batch is logged and counted, earlier batches stay written and later
        batches are still attempted.

        :param on_progress: Called with the completed percentage after every batch.
        :return: The import report.
        """
        self._expect(ImportStage.PREVIEW, "upload")
        if not self.duplicates.clean_data:
            raise EmptyInput("There are no valid rows to upload.")

        admin_id = await self._service.require_admin()
        self.stage = ImportStage.UPLOADING

        ads = convert_to_ads(self.duplicates.clean_data, admin_id, self._service.now())
        batches = list(self._batches(ads))
        report = ImportReport(file_name=self.file_name)

        for index, batch in enumerate(batches):
            try:
                await self._service.import_batch(batch)
                report.uploaded += len(batch)
            except Exception as e:
                logger.error(f"Batch {index + 1}/{len(batches)} of {self.file_name} failed: {e}")
                report.failed += len(batch)
                report.failed_batches.append(index + 1)

            percent = (index + 1) * 100 // len(batches)
            report.progress.append(percent)
            if on_progress is not None:
                on_progress(percent)

        if report.uploaded:
            await self._record_history(report)

        self.report = report
        self.stage = ImportStage.DONE
        logger.info(f"Imported {report.uploaded} ads from {self.file_name}, {report.failed} failed.")
        return report

    async def _record_history(self, report: ImportReport) -> None:
        item = UploadHistoryItem(
            id=str(uuid4()),
            timestamp=self._service.now(),
            total_uploaded=report.uploaded,
            file_name=report.file_name
        )
        try:
            await record_upload(item, self._redis)
        except Exception as e:
            logger.warning(f"Could not record upload history: {e}")
