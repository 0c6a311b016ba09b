import csv
from pathlib import Path

from .schemas import OrderReport

CSV_HEADER = ["Customer", "Product", "Quantity", "Subtotal"]


def write_report_csv(report: OrderReport, path) -> Path:
    """Write ``report`` as semicolon separated text; a missing ``.csv`` suffix is appended."""
    target = Path(path)
    if target.suffix != ".csv":
        target = target.with_name(target.name + ".csv")

    with target.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f, delimiter=";")
        writer.writerow(CSV_HEADER)
        for row in report.rows:
            writer.writerow([row.customer_name, row.product_name, row.quantity, f"{row.subtotal:.2f}"])
    return target
