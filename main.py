from fastapi import FastAPI
from shared.config.database import engine, Base
from shared.observability import setup_observability

# IMPORTANT: import models so they register with Base
from services.product_service import models as product_models
from services.order_service import models as order_models

from services.product_service.router import router as product_router, public_router as product_public_router
from services.order_service.router import router as order_router

app = FastAPI(title="Ecom AI Backend", version="1.0.0")

# --- OBSERVABILITY BOOTSTRAP ---
setup_observability(app, "ecom_ai_backend")

app.include_router(order_router, prefix="/api/orders", tags=["Orders"])
app.include_router(product_public_router, prefix="/api/products", tags=["Products"])
app.include_router(product_router, prefix="/api/products", tags=["Products"])

@app.get("/health")
async def health_check():
    return {"service": "ecom-ai-backend", "status": "running"}

@app.on_event("startup")
async def startup_event():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
