"""
Keeps the semantic index in step with committed relational state.

Each entity has exactly one document, stored under a fixed id
(`product-<id>`, `order-<code>`). Syncs of the same entity are serialised per
gateway, and a product snapshot older than one already written is skipped, so
overlapping placements cannot leave a stale or duplicate product document.
"""
import asyncio
import weakref
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import structlog

from shared.observability.metrics import ecomm_index_sync_failures_total
from .documents import order_doc_id, order_tag, product_doc_id, product_tag, render_order, render_product
from .gateway import IndexUnavailable, SemanticIndexGateway

logger = structlog.get_logger(__name__)

DELETED = float("inf")


@dataclass
class _SyncState:
    locks: Dict[str, asyncio.Lock] = field(default_factory=lambda: defaultdict(asyncio.Lock))
    versions: Dict[str, float] = field(default_factory=dict)


_states: "weakref.WeakKeyDictionary[object, _SyncState]" = weakref.WeakKeyDictionary()


def _state(gateway: SemanticIndexGateway) -> _SyncState:
    state = _states.get(gateway)
    if state is None:
        state = _states[gateway] = _SyncState()
    return state


def _failed(entity: str, tag: dict, operation: str, error: IndexUnavailable) -> List[str]:
    ecomm_index_sync_failures_total.labels(entity=entity, operation=operation).inc()
    logger.warning("index_sync_failed", entity=entity, tag=tag, operation=operation, reason=error.reason)
    return [f"{entity} {tag}: index {operation} failed ({error.reason})"]


async def _replace(
    gateway: SemanticIndexGateway,
    entity: str,
    doc_id: str,
    tag: dict,
    content: str,
    version: Optional[float] = None,
) -> List[str]:
    """Delete the entity's previous document, then add the new one.

    Returns human-readable warnings instead of raising: the relational state
    is already committed when this runs.
    """
    state = _state(gateway)
    async with state.locks[doc_id]:
        if version is not None and state.versions.get(doc_id, 0) >= version:
            logger.debug("index_sync_skipped", doc_id=doc_id, version=version)
            return []

        try:
            await gateway.delete_by_filter(tag)
        except IndexUnavailable as e:
            # A failed delete would leave two documents for the entity; skip the add.
            return _failed(entity, tag, "delete", e)

        try:
            await gateway.add_document(doc_id, content, tag)
        except IndexUnavailable as e:
            return _failed(entity, tag, "add", e)

        if version is not None:
            state.versions[doc_id] = version
    return []


async def sync_product(gateway: SemanticIndexGateway, product) -> List[str]:
    return await _replace(
        gateway,
        "product",
        product_doc_id(product.id),
        product_tag(product.id),
        render_product(product),
        version=product.version,
    )


async def remove_product(gateway: SemanticIndexGateway, product_id: int) -> List[str]:
    doc_id = product_doc_id(product_id)
    tag = product_tag(product_id)
    state = _state(gateway)
    async with state.locks[doc_id]:
        # Late syncs of older snapshots must not bring the document back
        state.versions[doc_id] = DELETED
        try:
            await gateway.delete_by_filter(tag)
        except IndexUnavailable as e:
            return _failed("product", tag, "delete", e)
    return []


async def sync_order(gateway: SemanticIndexGateway, order) -> List[str]:
    return await _replace(
        gateway, "order", order_doc_id(order.order_id), order_tag(order.order_id), render_order(order)
    )
