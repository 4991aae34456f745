from functools import lru_cache

import chromadb
from chromadb.config import Settings
from langchain_openai import OpenAIEmbeddings

from shared.config.settings import (
    INDEX_COLLECTION,
    INDEX_HOST,
    INDEX_PATH,
    INDEX_PORT,
    INDEX_TIMEOUT_SECONDS,
    OPENAI_EMBEDDING_MODEL,
)
from .gateway import ChromaIndexGateway


def build_chroma_client():
    settings = Settings(anonymized_telemetry=False)
    if INDEX_HOST:
        return chromadb.HttpClient(host=INDEX_HOST, port=INDEX_PORT, settings=settings)
    return chromadb.PersistentClient(path=INDEX_PATH, settings=settings)


def connect_index():
    """Open the collection and the embedder; runs inside the gateway's timeout."""
    collection = build_chroma_client().get_or_create_collection(
        name=INDEX_COLLECTION,
        metadata={"hnsw:space": "cosine"},
    )
    embeddings = OpenAIEmbeddings(model=OPENAI_EMBEDDING_MODEL)
    return collection, embeddings.embed_documents


@lru_cache
def get_index_gateway() -> ChromaIndexGateway:
    """FastAPI dependency; one gateway per process, connected on first use."""
    return ChromaIndexGateway(connect=connect_index, timeout=INDEX_TIMEOUT_SECONDS)
