"""
Excel File Manager with Concurrency Control

Keeps a spreadsheet copy of the order board in ``data/orders.xlsx``.
Each order occupies one row; exporting the same order again (after a
status change) replaces that row. Writers from several Celery workers are
serialised with a file lock.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import pandas as pd
from filelock import FileLock, Timeout

from smartmenu.core.config import get_settings
from smartmenu.models import OrderStatus

logger = logging.getLogger(__name__)

_STATUS_ORDER = [status.value for status in OrderStatus]


def _status_rank(status: Any) -> int:
    """Position in the kitchen workflow; unknown values rank lowest."""
    try:
        return _STATUS_ORDER.index(status)
    except ValueError:
        return -1


class ExcelManager:
    """Process-safe Excel file manager."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "table",
        "items",
        "total",
        "comment",
        "order_status",
        "exported_at",
    ]

    @classmethod
    def _paths(cls, data_dir: Optional[Path] = None) -> tuple[Path, Path]:
        settings = get_settings()
        directory = Path(data_dir or settings.data_directory)
        orders_file = directory / settings.excel_filename
        return orders_file, orders_file.with_name(orders_file.name + ".lock")

    @classmethod
    def _ensure_data_dir(cls, orders_file: Path) -> None:
        """Create data directory if needed."""
        if not orders_file.parent.exists():
            orders_file.parent.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {orders_file.parent}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        """Load existing file or create new DataFrame."""
        if file_path.exists():
            df = pd.read_excel(file_path, engine="openpyxl", dtype={"order_id": str, "table": str})
            return df.reindex(columns=cls.ORDER_COLUMNS)
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def export_order(cls, order_data: dict[str, Any], data_dir: Optional[Path] = None) -> dict[str, Any]:
        """Insert or replace the row for ``order_data["order_id"]`` under the file lock.

        A row already further along the workflow than the incoming status is kept.
        """
        orders_file, lock_file = cls._paths(data_dir)
        cls._ensure_data_dir(orders_file)
        lock_timeout = get_settings().excel_lock_timeout

        order_id = str(order_data.get("order_id", ""))
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(lock_file), timeout=lock_timeout):
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(orders_file)

                export_time = datetime.now().isoformat()
                new_row = {
                    "order_id": order_id,
                    "date_time": order_data.get("created_at") or export_time,
                    "table": order_data.get("table"),
                    "items": order_data.get("items"),
                    "total": order_data.get("total"),
                    "comment": order_data.get("comment") or "",
                    "order_status": order_data.get("order_status"),
                    "exported_at": export_time,
                }

                existing = df.loc[df["order_id"] == order_id, "order_status"]
                current = existing.iloc[-1] if not existing.empty else None
                incoming = new_row["order_status"]

                result["success"] = True
                if current is not None and _status_rank(current) > _status_rank(incoming):
                    # Exports may arrive out of order; a row never moves back
                    logger.warning(f"Order #{order_id}: stale '{incoming}' export skipped, row is '{current}'")
                    result["message"] = f"Order #{order_id} already '{current}'"
                else:
                    df = df[df["order_id"] != order_id]
                    df = pd.concat([df, pd.DataFrame([new_row], columns=cls.ORDER_COLUMNS)], ignore_index=True)
                    df.to_excel(str(orders_file), index=False, engine="openpyxl")

                    action = "updated" if current is not None else "exported"
                    logger.info(f"Order #{order_id} {action} in Excel ({incoming})")

                    result["message"] = f"Order #{order_id} {action}"
                    result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        except (OSError, ValueError) as e:
            result["message"] = str(e)
            logger.exception(f"Error exporting Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls, data_dir: Optional[Path] = None) -> list[dict[str, Any]]:
        """All exported rows, in file order."""
        orders_file, _ = cls._paths(data_dir)
        if not orders_file.exists():
            return []
        return cls._load_or_create_df(orders_file).to_dict("records")

    @classmethod
    def clear_all(cls, data_dir: Optional[Path] = None) -> bool:
        """Delete the export and its lock file."""
        orders_file, lock_file = cls._paths(data_dir)
        for f in (orders_file, lock_file):
            if f.exists():
                f.unlink()
        logger.info("Excel export cleared")
        return True
