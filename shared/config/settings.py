import os
from dotenv import load_dotenv

load_dotenv()

DB_USER = os.getenv("POSTGRES_USER", "postgres")
DB_PASSWORD = os.getenv("POSTGRES_PASSWORD", "postgres")
DB_HOST = os.getenv("POSTGRES_HOST", "localhost") # In Docker, this will be 'postgres'
DB_PORT = os.getenv("POSTGRES_PORT", "5433")
DB_NAME = os.getenv("POSTGRES_DB", "ecommerce")

# DATABASE_URL wins over the POSTGRES_* pieces (e.g. sqlite+aiosqlite:///./ecom.db for local dev)
DATABASE_URL = os.getenv(
    "DATABASE_URL",
    f"postgresql+asyncpg://{DB_USER}:{DB_PASSWORD}@{DB_HOST}:{DB_PORT}/{DB_NAME}",
)
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() == "true"

# Semantic index (ChromaDB)
INDEX_HOST = os.getenv("INDEX_HOST", "")  # empty -> embedded persistent client
INDEX_PORT = int(os.getenv("INDEX_PORT", "8000"))
INDEX_PATH = os.getenv("INDEX_PATH", "./vector_store")
INDEX_COLLECTION = os.getenv("INDEX_COLLECTION", "ecom_documents")
INDEX_TIMEOUT_SECONDS = float(os.getenv("INDEX_TIMEOUT_SECONDS", "5.0"))

# OpenAI (embeddings + description generation)
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")
OPENAI_EMBEDDING_MODEL = os.getenv("OPENAI_EMBEDDING_MODEL", "text-embedding-3-small")

# Observability
TRACING_ENABLED = os.getenv("TRACING_ENABLED", "true").lower() == "true"
OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT", "http://localhost:4317")
