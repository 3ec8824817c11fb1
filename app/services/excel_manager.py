"""
Excel File Manager with Concurrency Control

Process-safe Excel export of placed orders. Several Celery workers may
append at once, so every read-modify-write happens under a FileLock.

Author: Khalil Bannouri
Version: 4.0.0
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import pandas as pd
from filelock import FileLock, Timeout

from app.core.config import get_settings

logger = logging.getLogger(__name__)


class ExcelManager:
    """Lock-guarded Excel file manager."""

    ORDER_COLUMNS = [
        "order_id",
        "date_time",
        "user_phone",
        "kitchen_name",
        "order_mode",
        "order_status",
        "delivery_address",
        "delivery_slot",
        "items",
        "subtotal",
        "delivery_fee",
        "service_fee",
        "total",
        "exported_at",
    ]

    @staticmethod
    def data_dir() -> Path:
        return Path(get_settings().data_directory)

    @classmethod
    def orders_file(cls) -> Path:
        return cls.data_dir() / get_settings().excel_filename

    @classmethod
    def lock_file(cls) -> Path:
        return cls.data_dir() / f"{get_settings().excel_filename}.lock"

    @classmethod
    def _ensure_data_dir(cls) -> None:
        data_dir = cls.data_dir()
        if not data_dir.exists():
            data_dir.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {data_dir}")

    @classmethod
    def _load_or_create_df(cls, file_path: Path) -> pd.DataFrame:
        if file_path.exists():
            return pd.read_excel(file_path, engine="openpyxl")
        return pd.DataFrame(columns=cls.ORDER_COLUMNS)

    @classmethod
    def export_order(cls, order_data: dict[str, Any]) -> dict[str, Any]:
        """Append one order row to the export with file locking."""
        cls._ensure_data_dir()

        order_id = order_data.get("order_id", 0)
        lock_timeout = get_settings().excel_lock_timeout
        result = {
            "success": False,
            "message": "",
            "order_id": order_id,
            "exported_at": None,
        }

        try:
            with FileLock(str(cls.lock_file()), timeout=lock_timeout):
                logger.debug(f"Lock acquired for Order #{order_id}")

                df = cls._load_or_create_df(cls.orders_file())

                export_time = datetime.now().isoformat()
                new_row = {column: order_data.get(column) for column in cls.ORDER_COLUMNS}
                new_row["order_id"] = order_id
                new_row["date_time"] = order_data.get("created_at") or export_time
                new_row["exported_at"] = export_time

                df = pd.concat([df, pd.DataFrame([new_row])], ignore_index=True)
                df.to_excel(str(cls.orders_file()), index=False, engine="openpyxl")

                logger.info(f"Order #{order_id} exported to Excel")

                result["success"] = True
                result["message"] = f"Order #{order_id} exported"
                result["exported_at"] = export_time

            logger.debug(f"Lock released for Order #{order_id}")

        except Timeout:
            result["message"] = f"Lock timeout ({lock_timeout}s)"
            logger.error(f"Lock timeout for Order #{order_id}")

        return result

    @classmethod
    def get_all_orders(cls) -> list[dict[str, Any]]:
        """Read back every exported order."""
        orders_file = cls.orders_file()
        if not orders_file.exists():
            return []
        df = pd.read_excel(orders_file, engine="openpyxl")
        return df.to_dict("records")

    @classmethod
    def clear_all(cls) -> None:
        """Delete the export and its lock file."""
        for f in (cls.orders_file(), cls.lock_file()):
            if f.exists():
                f.unlink()
        logger.info("Excel export cleared")
