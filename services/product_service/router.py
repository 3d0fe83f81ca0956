from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from shared.config.database import get_db
from shared.security.dependencies import require_admin
from .schemas import ProductCreate, ProductResponse, SizesUpdate, StockUpdate
from .service import ProductService

router = APIRouter(prefix="/api/products", tags=["Products"])


@router.get("", response_model=list[ProductResponse])
async def list_products(
    query: str | None = Query(default=None),
    db: AsyncSession = Depends(get_db)
):
    return await ProductService.list_products(db, query)


@router.get("/{product_id}", response_model=ProductResponse)
async def get_product(product_id: str, db: AsyncSession = Depends(get_db)):
    return await ProductService.get_product_by_id(db, product_id)


@router.post(
    "",
    response_model=ProductResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
async def create_product(product: ProductCreate, db: AsyncSession = Depends(get_db)):
    return await ProductService.create_product(db, product)


@router.put("/{product_id}/sizes", response_model=ProductResponse, dependencies=[Depends(require_admin)])
async def replace_sizes(product_id: str, payload: SizesUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService.replace_sizes(db, product_id, payload.sizes)


@router.post("/{product_id}/restock", response_model=ProductResponse, dependencies=[Depends(require_admin)])
async def restock(product_id: str, payload: StockUpdate, db: AsyncSession = Depends(get_db)):
    return await ProductService.restock(db, product_id, payload.quantity, payload.size)
