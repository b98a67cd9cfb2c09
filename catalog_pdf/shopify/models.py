from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

PRICE_MISSING = "N/A"


@dataclass(frozen=True, slots=True)
class Variant:
    price: str | None = None
    inventory_quantity: int = 0
    inventory_policy: str = "deny"

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Variant":
        price = payload.get("price")
        return cls(
            price=str(price) if price not in (None, "") else None,
            inventory_quantity=int(payload.get("inventory_quantity") or 0),
            inventory_policy=str(payload.get("inventory_policy") or "deny"),
        )

    @property
    def sold_out(self) -> bool:
        return self.inventory_quantity <= 0 and self.inventory_policy == "deny"


@dataclass(frozen=True, slots=True)
class Product:
    """Товар магазина в том виде, в каком он нужен каталогу."""

    id: str
    title: str = ""
    variants: tuple[Variant, ...] = field(default_factory=tuple)
    image_url: str | None = None
    handle: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    @classmethod
    def from_api(cls, payload: dict[str, Any]) -> "Product":
        image = payload.get("image") or {}
        image_url = image.get("src") if isinstance(image, dict) else None
        if not image_url:
            images = payload.get("images") or []
            if images and isinstance(images[0], dict):
                image_url = images[0].get("src")
        return cls(
            id=str(payload["id"]),
            title=payload.get("title") or "",
            variants=tuple(Variant.from_api(item) for item in payload.get("variants") or []),
            image_url=image_url or None,
            handle=payload.get("handle"),
            created_at=payload.get("created_at"),
            updated_at=payload.get("updated_at"),
        )

    @property
    def price(self) -> str:
        if self.variants and self.variants[0].price:
            return self.variants[0].price
        return PRICE_MISSING

    @property
    def out_of_stock(self) -> bool:
        # товар без вариантов считаем закончившимся, как и all() по пустому списку
        return all(variant.sold_out for variant in self.variants)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "handle": self.handle,
            "price": self.price,
            "image": self.image_url,
            "variants": [
                {
                    "price": variant.price,
                    "inventory_quantity": variant.inventory_quantity,
                    "inventory_policy": variant.inventory_policy,
                }
                for variant in self.variants
            ],
            "created_at": self.created_at,
            "updated_at": self.updated_at,
            "isOutOfStock": self.out_of_stock,
        }
