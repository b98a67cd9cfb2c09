from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from threading import Lock

from catalog_pdf.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class LastUpdateRecord:
    last_update_time: datetime | None = None
    product_count: int = 0

    def to_json(self) -> dict:
        return {
            "lastUpdateTime": self.last_update_time.isoformat() if self.last_update_time else None,
            "productCount": self.product_count,
        }

    @classmethod
    def from_json(cls, data: dict) -> "LastUpdateRecord":
        raw_ts = data.get("lastUpdateTime")
        return cls(
            last_update_time=datetime.fromisoformat(raw_ts.replace("Z", "+00:00"))
            if raw_ts
            else None,
            product_count=int(data.get("productCount") or 0),
        )


class LastUpdateStore:
    """JSON-файл с временем и числом товаров последней успешной генерации."""

    def __init__(self, path: Path):
        self.path = path
        self._lock = Lock()

    def load(self) -> LastUpdateRecord:
        with self._lock:
            try:
                data = json.loads(self.path.read_text(encoding="utf-8"))
                return LastUpdateRecord.from_json(data)
            except FileNotFoundError:
                return LastUpdateRecord()
            except (OSError, ValueError, TypeError, AttributeError) as exc:
                logger.error(
                    "Не удалось прочитать информацию о последнем обновлении",
                    extra={"path": str(self.path), "error": str(exc)},
                )
                return LastUpdateRecord()

    def save(self, record: LastUpdateRecord) -> None:
        with self._lock:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(record.to_json(), handle, indent=2)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        logger.info(
            "Информация об обновлении сохранена: %s товаров",
            record.product_count,
        )
