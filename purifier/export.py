"""Export helpers for purified transcripts and their corrections."""

from __future__ import annotations

import csv
import io
from typing import Iterable, List

import openpyxl
from openpyxl.utils import get_column_letter

from .config import DEFAULT_DOWNLOAD_NAME, DOWNLOAD_PREFIX, EXPORT_HEADERS
from .models import Correction


def download_name(file_name: str) -> str:
    return f"{DOWNLOAD_PREFIX}{file_name or DEFAULT_DOWNLOAD_NAME}"


def to_txt(text: str) -> bytes:
    return text.encode("utf-8")


def to_csv(corrections: Iterable[Correction]) -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(EXPORT_HEADERS)
    for correction in corrections:
        writer.writerow([correction.original, correction.corrected, correction.reason])
    return buffer.getvalue().encode("utf-8-sig")


def to_xlsx(corrections: Iterable[Correction]) -> bytes:
    workbook = openpyxl.Workbook()
    sheet = workbook.active
    sheet.title = "Corrections"

    sheet.append(EXPORT_HEADERS)
    for correction in corrections:
        sheet.append([correction.original, correction.corrected, correction.reason])

    for index, column_title in enumerate(EXPORT_HEADERS, start=1):
        column = sheet.column_dimensions[get_column_letter(index)]
        column.width = max(len(column_title) + 2, 30)

    buffer = io.BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def to_json(corrections: Iterable[Correction]) -> List[dict]:
    return [correction.to_dict() for correction in corrections]
