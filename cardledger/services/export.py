# cardledger/services/export.py

import csv
import io
from datetime import date
from typing import Iterable, List


def export_filename(name: str, today: date) -> str:
    return f"{name}_{today.isoformat()}.csv"


def to_csv(rows: Iterable[dict], headers: List[str]) -> str:
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=headers, extrasaction="ignore")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: "" if row.get(key) is None else row.get(key) for key in headers})
    return buffer.getvalue()
