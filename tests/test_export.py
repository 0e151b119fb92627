import csv
import io
import logging
import sys
from datetime import date, datetime, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[1] / "src"))

from laundry_tracker.domain.models import WEIGHT_UNCLEAR, OrderRecord  # noqa: E402
from laundry_tracker.ledger.export import (  # noqa: E402
    EXPORT_MIME_TYPE,
    HEADERS,
    export_csv,
    export_filename,
    write_export,
)


def _ts(*args: int) -> int:
    return int(datetime(*args, tzinfo=timezone.utc).timestamp() * 1000)


def _record(**overrides) -> OrderRecord:
    data = dict(
        service_name="Acme",
        order_number="1001",
        customer_name="Jane Doe",
        delivery_address="Main St 1",
        weight=3.0,
        price=7.5,
        confidence=0.9,
        timestamp=_ts(2024, 1, 5, 9, 30, 15),
    )
    data.update(overrides)
    return OrderRecord(**data)


def _parse(content: bytes):
    return list(csv.reader(io.StringIO(content.decode("utf-8"))))


def test_empty_ledger_exports_nothing(tmp_path: Path) -> None:
    assert export_csv([]) is None
    assert write_export([], str(tmp_path / "out")) is None
    assert not (tmp_path / "out").exists()


def test_header_and_row_layout() -> None:
    content = export_csv([_record()], tz=timezone.utc)
    lines = content.decode("utf-8").split("\n")
    assert lines[0] == "Date,Time,Laundry Service,Order Number,Customer Name,Delivery Address,Weight (kg),Price (EUR)"
    assert lines[1] == '2024-01-05,09:30:15,"Acme","1001","Jane Doe","Main St 1",3,7.50'
    assert EXPORT_MIME_TYPE == "text/csv"


def test_text_fields_survive_csv_parsing() -> None:
    record = _record(customer_name='O"Brien, Pat', delivery_address="Main St 1\r\nApt 2\n10115 Berlin")
    rows = _parse(export_csv([record], tz=timezone.utc))
    assert rows[0] == list(HEADERS)
    assert rows[1][4] == 'O"Brien, Pat'
    assert rows[1][5] == "Main St 1 Apt 2 10115 Berlin"
    assert len(rows) == 2


def test_unclear_weight_and_missing_price() -> None:
    record = _record(weight=WEIGHT_UNCLEAR, price=None)
    line = export_csv([record], tz=timezone.utc).decode("utf-8").split("\n")[1]
    assert line.endswith(",DATA_UNCLEAR,0.00")


def test_rows_keep_storage_order() -> None:
    newer = _record(order_number="2", timestamp=_ts(2024, 2, 1, 8, 0, 0))
    older = _record(order_number="1", timestamp=_ts(2024, 1, 1, 8, 0, 0))
    rows = _parse(export_csv([newer, older], tz=timezone.utc))
    assert [r[3] for r in rows[1:]] == ["2", "1"]
    assert rows[1][:2] == ["2024-02-01", "08:00:00"]


def test_write_export_names_file_by_date(tmp_path: Path) -> None:
    assert export_filename(date(2024, 3, 7)) == "laundry-tracker-export-2024-03-07.csv"
    path = write_export([_record(), _record(timestamp=1)], str(tmp_path), today=date(2024, 3, 7), tz=timezone.utc)
    assert path == str(tmp_path / "laundry-tracker-export-2024-03-07.csv")
    assert len(_parse(Path(path).read_bytes())) == 3


class _ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.messages = []

    def emit(self, record: logging.LogRecord) -> None:
        self.messages.append(record.getMessage())


def test_write_export_counts_records_not_lines(tmp_path: Path) -> None:
    handler = _ListHandler()
    logger = logging.getLogger("laundry_tracker.ledger-export")
    level = logger.level
    logger.setLevel(logging.INFO)
    logger.addHandler(handler)
    try:
        records = (r for r in [_record(customer_name="Jane\nDoe"), _record(service_name="Ac\rme", timestamp=1)])
        path = write_export(records, str(tmp_path), today=date(2024, 3, 7), tz=timezone.utc)
    finally:
        logger.removeHandler(handler)
        logger.setLevel(level)
    assert len(_parse(Path(path).read_bytes())) == 3
    assert any(m.startswith("Exported 2 record(s)") for m in handler.messages)
