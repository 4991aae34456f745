from fastapi import APIRouter, Depends, File, HTTPException, Query, Response, UploadFile, status
from langchain_core.language_models import BaseChatModel
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import verify_internal_api_key
from shared.vector_store import IndexUnavailable, SemanticIndexGateway
from shared.vector_store.client import get_index_gateway
from .ai import generate_description, get_chat_model
from .exceptions import ImageNotFound, ProductInUse, ProductNotFound
from .schemas import (
    DescriptionRequest,
    DescriptionResponse,
    ProductCreate,
    ProductResponse,
    ProductUpdate,
    ProductWriteResponse,
)
from .service import ProductService

# Catalogue mutations need the internal key; reads are public
router = APIRouter(dependencies=[Depends(verify_internal_api_key)])
public_router = APIRouter()


def _write_response(product, warnings) -> ProductWriteResponse:
    data = ProductResponse.model_validate(product).model_dump()
    return ProductWriteResponse(**data, index_warnings=warnings)


@public_router.get("", response_model=list[ProductResponse])
async def list_products(db: AsyncSession = Depends(get_db)):
    return await ProductService.list_products(db)


@public_router.get("/search", response_model=list[ProductResponse])
async def search_products(
    query: str = Query(min_length=1),
    db: AsyncSession = Depends(get_db),
    gateway: SemanticIndexGateway = Depends(get_index_gateway),
):
    try:
        return await ProductService.semantic_search(db, gateway, query)
    except IndexUnavailable:
        raise HTTPException(status_code=503, detail="Search is temporarily unavailable")


@public_router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: int, db: AsyncSession = Depends(get_db)):
    try:
        return await ProductService.get_product_by_id(db, product_id)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@public_router.get("/{product_id}/image")
async def get_product_image(product_id: int, db: AsyncSession = Depends(get_db)):
    try:
        data, media_type = await ProductService.get_image(db, product_id)
    except (ProductNotFound, ImageNotFound) as e:
        raise HTTPException(status_code=404, detail=str(e))
    return Response(content=data, media_type=media_type)


@router.post("", response_model=ProductWriteResponse, status_code=status.HTTP_201_CREATED)
async def create_product(
    product: ProductCreate,
    db: AsyncSession = Depends(get_db),
    gateway: SemanticIndexGateway = Depends(get_index_gateway),
):
    created, warnings = await ProductService.create_product(db, gateway, product)
    return _write_response(created, warnings)


@router.put("/{product_id}", response_model=ProductWriteResponse)
async def update_product(
    product_id: int,
    product: ProductUpdate,
    db: AsyncSession = Depends(get_db),
    gateway: SemanticIndexGateway = Depends(get_index_gateway),
):
    try:
        updated, warnings = await ProductService.update_product(db, gateway, product_id, product)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    return _write_response(updated, warnings)


@router.delete("/{product_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_product(
    product_id: int,
    db: AsyncSession = Depends(get_db),
    gateway: SemanticIndexGateway = Depends(get_index_gateway),
):
    try:
        await ProductService.delete_product(db, gateway, product_id)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ProductInUse as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.put("/{product_id}/image", response_model=ProductResponse)
async def upload_product_image(
    product_id: int,
    image: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
):
    data = await image.read()
    if not data:
        raise HTTPException(status_code=400, detail="Image file is empty")
    try:
        return await ProductService.set_image(db, product_id, image.filename, image.content_type, data)
    except ProductNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))


@router.post("/generate-description", response_model=DescriptionResponse)
async def create_description(
    payload: DescriptionRequest,
    llm: BaseChatModel = Depends(get_chat_model),
):
    try:
        text = await generate_description(llm, payload.name, payload.category)
    except Exception:
        raise HTTPException(status_code=502, detail="Description service is unavailable")
    return DescriptionResponse(description=text)
