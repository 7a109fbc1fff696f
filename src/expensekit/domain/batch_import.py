"""Load payment batches from CSV files."""

import csv
from pathlib import Path

from expensekit.domain.entities import PaymentSpec
from expensekit.domain.errors import ValidationError
from expensekit.utils.amount_parser import parse_amount
from expensekit.utils.date_parser import parse_date

REQUIRED_COLUMNS = ("amount", "payee_type", "payee_id")
OPTIONAL_COLUMNS = ("category", "date", "description")


def load_payment_batch(csv_file_path: str | Path) -> list[PaymentSpec]:
    """Read payment specs from a CSV file.

    The header must contain ``amount``, ``payee_type`` and ``payee_id``;
    ``category``, ``date`` and ``description`` are optional. Column names are
    case-insensitive. Rows are returned in file order; values are checked by
    the ledger when the batch is recorded.

    Args:
        csv_file_path: Path to CSV file

    Returns:
        One PaymentSpec per data row

    Raises:
        FileNotFoundError: If CSV file doesn't exist
        ValidationError: If a column is missing or a row cannot be parsed
            (the message names the CSV row number)
    """
    csv_path = Path(csv_file_path)
    if not csv_path.exists():
        raise FileNotFoundError(f"CSV file not found: {csv_file_path}")

    specs = []
    with open(csv_path, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValidationError("CSV file has no columns")

        columns = {name.strip().lower(): name for name in reader.fieldnames if name}
        missing = [col for col in REQUIRED_COLUMNS if col not in columns]
        if missing:
            raise ValidationError(f"CSV file missing required columns: {', '.join(missing)}")

        def value(row: dict, column: str) -> str | None:
            if column not in columns:
                return None
            raw = row.get(columns[column])
            return raw.strip() if raw and raw.strip() else None

        for row_num, row in enumerate(reader, start=2):  # Start at 2 (header is row 1)
            amount_str = value(row, "amount")
            if amount_str is None:
                raise ValidationError(f"Row {row_num}: Missing amount")
            try:
                amount = parse_amount(amount_str)
            except ValueError as e:
                raise ValidationError(f"Row {row_num}: {e}")

            occurred_at = None
            date_str = value(row, "date")
            if date_str is not None:
                try:
                    occurred_at = parse_date(date_str)
                except ValueError as e:
                    raise ValidationError(f"Row {row_num}: {e}")

            specs.append(
                PaymentSpec(
                    amount=amount,
                    payee_type=value(row, "payee_type") or "",
                    payee_id=value(row, "payee_id") or "",
                    category=value(row, "category"),
                    occurred_at=occurred_at,
                    description=value(row, "description"),
                )
            )

    if not specs:
        raise ValidationError("CSV file contains no payments")
    return specs
