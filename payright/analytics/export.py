"""
Transaction Export

Writes the transaction history as CSV, one row per transaction,
newest first (the order it is stored in).
"""

import csv
import io
from pathlib import Path
from typing import Iterable, Union

import structlog

from payright.models.wallet import Transaction


logger = structlog.get_logger(__name__)


CSV_COLUMNS = [
    "id",
    "timestamp",
    "type",
    "amount",
    "description",
    "subscription_id",
    "related_detail",
]


def _row(txn: Transaction) -> list[str]:
    return [
        txn.id,
        txn.timestamp.isoformat(),
        txn.type.value,
        f"{txn.amount:.2f}" if txn.amount is not None else "",
        txn.description,
        txn.subscription_id or "",
        txn.related_detail or "",
    ]


def transactions_to_csv(transactions: Iterable[Transaction]) -> str:
    """Render transactions as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)
    writer.writerow(CSV_COLUMNS)
    for txn in transactions:
        writer.writerow(_row(txn))
    return buffer.getvalue()


def write_transactions_csv(
    transactions: Iterable[Transaction],
    path: Union[str, Path],
) -> Path:
    """Write transactions to a CSV file, creating parent directories."""
    csv_path = Path(path)
    csv_path.parent.mkdir(parents=True, exist_ok=True)

    count = 0
    with open(csv_path, "w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow(CSV_COLUMNS)
        for txn in transactions:
            writer.writerow(_row(txn))
            count += 1

    logger.info("transactions_exported", path=str(csv_path), rows=count)
    return csv_path
