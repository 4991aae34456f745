from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession
from shared.config.database import get_db
from shared.vector_store import SemanticIndexGateway
from shared.vector_store.client import get_index_gateway
from .exceptions import ConcurrentStockUpdate, InsufficientStock, PersistenceFailure, ProductNotFound
from .schemas import OrderRequest, OrderResponse, PlaceOrderResponse
from .service import OrderService

router = APIRouter()

@router.post("/place", response_model=PlaceOrderResponse)
async def place_order(
    order: OrderRequest,
    db: AsyncSession = Depends(get_db),
    gateway: SemanticIndexGateway = Depends(get_index_gateway),
):
    try:
        return await OrderService.place_order(db, gateway, order)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except InsufficientStock as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ConcurrentStockUpdate as e:
        raise HTTPException(status_code=409, detail=str(e))
    except PersistenceFailure as e:
        # No driver/SQL detail leaks to the caller
        raise HTTPException(status_code=500, detail=str(e))

@router.get("", response_model=list[OrderResponse])
async def list_orders(db: AsyncSession = Depends(get_db)):
    return await OrderService.list_orders(db)
