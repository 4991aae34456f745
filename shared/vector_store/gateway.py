"""
Semantic Index Gateway.

Capability interface over the external vector store. The order and product
services only ever talk to `SemanticIndexGateway`; `ChromaIndexGateway` is the
production adapter. Every call is bounded by a timeout and any failure is
re-raised as `IndexUnavailable` so callers can decide whether it is fatal.
"""
import asyncio
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Tuple

import structlog

logger = structlog.get_logger(__name__)

Embedder = Callable[[List[str]], List[List[float]]]


class IndexUnavailable(Exception):
    """The semantic index could not complete a delete/add/search."""

    def __init__(self, operation: str, reason: str):
        self.operation = operation
        self.reason = reason
        super().__init__(f"Semantic index {operation} failed: {reason}")


@dataclass
class SemanticDocument:
    id: str
    content: str
    metadata: Dict[str, str] = field(default_factory=dict)
    score: Optional[float] = None


class SemanticIndexGateway(Protocol):
    async def delete_by_filter(self, metadata: Dict[str, str]) -> None: ...

    async def add_document(self, doc_id: str, content: str, metadata: Dict[str, str]) -> None: ...

    async def search(
        self,
        query: str,
        top_k: int = 5,
        similarity_threshold: float = 0.0,
        metadata: Optional[Dict[str, str]] = None,
    ) -> List[SemanticDocument]: ...


def _where(metadata: Dict[str, str]) -> Dict[str, Any]:
    # Chroma wants an explicit $and once there is more than one condition
    if len(metadata) <= 1:
        return dict(metadata)
    return {"$and": [{key: value} for key, value in metadata.items()]}


class ChromaIndexGateway:
    """
    ChromaDB-backed gateway.

    Embeddings are computed by the injected `embedder` and handed to Chroma
    explicitly, so the collection never downloads its own embedding model.
    The blocking Chroma client runs in a worker thread.

    With `connect` instead of a collection, the client, collection and
    embedder are built on first use inside the same timeout, so an index
    that is down at startup fails as `IndexUnavailable` like any other call
    and is retried on the next one.

    Documents are upserted under the caller's id; callers use one id per
    entity so replays never duplicate. A call that times out keeps running in
    its worker thread: a late delete can still remove a newer document for
    the same entity, which the next sync of that entity puts back.
    """

    def __init__(
        self,
        collection=None,
        embedder: Optional[Embedder] = None,
        timeout: float = 5.0,
        connect: Optional[Callable[[], Tuple[Any, Embedder]]] = None,
    ):
        if collection is None and connect is None:
            raise ValueError("either a collection or a connect callable is required")
        self.collection = collection
        self.embedder = embedder
        self.timeout = timeout
        self._connect = connect
        self._connect_lock = threading.Lock()

    def _ensure_connected(self):
        with self._connect_lock:
            if self.collection is None:
                collection, embedder = self._connect()
                self.collection, self.embedder = collection, embedder
        return self.collection, self.embedder

    async def _call(self, operation: str, fn):
        def _run():
            collection, embedder = self._ensure_connected()
            return fn(collection, embedder)

        try:
            return await asyncio.wait_for(asyncio.to_thread(_run), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise IndexUnavailable(operation, f"timed out after {self.timeout}s") from e
        except Exception as e:
            raise IndexUnavailable(operation, str(e)) from e

    async def delete_by_filter(self, metadata: Dict[str, str]) -> None:
        await self._call("delete", lambda collection, _: collection.delete(where=_where(metadata)))
        logger.debug("index_delete", filter=metadata)

    async def add_document(self, doc_id: str, content: str, metadata: Dict[str, str]) -> None:
        def _add(collection, embedder):
            embedding = embedder([content])[0]
            collection.upsert(
                ids=[doc_id],
                documents=[content],
                metadatas=[metadata],
                embeddings=[embedding],
            )

        await self._call("add", _add)
        logger.debug("index_add", doc_id=doc_id, metadata=metadata)

    async def search(
        self,
        query: str,
        top_k: int = 5,
        similarity_threshold: float = 0.0,
        metadata: Optional[Dict[str, str]] = None,
    ) -> List[SemanticDocument]:
        def _query(collection, embedder):
            embedding = embedder([query])[0]
            kwargs = {"query_embeddings": [embedding], "n_results": top_k}
            if metadata:
                kwargs["where"] = _where(metadata)
            return collection.query(**kwargs)

        result = await self._call("search", _query)

        documents = []
        ids = result.get("ids") or [[]]
        for i, doc_id in enumerate(ids[0]):
            # cosine distance -> similarity
            score = 1.0 - float(result["distances"][0][i])
            if score < similarity_threshold:
                continue
            documents.append(SemanticDocument(
                id=doc_id,
                content=result["documents"][0][i],
                metadata=dict(result["metadatas"][0][i] or {}),
                score=score,
            ))
        return documents
