from __future__ import annotations

from typing import Protocol

from core.models import ApplyResult, ProductPayload


class ProductWriter(Protocol):
    """Common interface for targets that persist mapped release data onto a product."""

    def apply(self, product_id: int, payload: ProductPayload) -> ApplyResult:
        ...
