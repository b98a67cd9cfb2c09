from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(slots=True)
class ErrorEvent:
    """Структурированное описание некритичной ошибки генерации для логов."""

    error_type: str
    error_source: str
    url: str | None = None
    product_id: str | None = None
    page_index: int | None = None
    fatal: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "error_type": self.error_type,
            "error_source": self.error_source,
            "fatal": self.fatal,
            "timestamp": _now_iso(),
        }
        if self.url:
            payload["url"] = self.url
        if self.product_id:
            payload["product_id"] = self.product_id
        if self.page_index is not None:
            payload["page_index"] = self.page_index
        if self.metadata:
            payload["details"] = self.metadata
        return payload


def build_error_event(
    *,
    error_type: str,
    error_source: str,
    url: str | None = None,
    product_id: str | None = None,
    page_index: int | None = None,
    fatal: bool = False,
    metadata: dict[str, Any] | None = None,
) -> dict[str, Any]:
    """Упрощённый фабричный метод для создания словаря события ошибки."""
    event = ErrorEvent(
        error_type=error_type,
        error_source=error_source,
        url=url,
        product_id=product_id,
        page_index=page_index,
        fatal=fatal,
        metadata=metadata or {},
    )
    return event.to_dict()
