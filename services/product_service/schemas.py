from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from shared.schemas import CamelModel


class SizeStock(CamelModel):
    size: str = Field(min_length=1, max_length=20)
    stock: int = Field(ge=0)


class ProductCreate(CamelModel):
    name: str
    description: Optional[str] = None
    price: Decimal = Field(ge=0, decimal_places=2)
    stock: int = Field(default=0, ge=0)
    has_sizes: bool = False
    image_url: Optional[str] = None
    sizes: List[SizeStock] = []


class SizesUpdate(CamelModel):
    sizes: List[SizeStock]


class StockUpdate(CamelModel):
    quantity: int = Field(gt=0)
    size: Optional[str] = None


class ProductResponse(CamelModel):
    id: str
    name: str
    description: Optional[str] = None
    price: Decimal
    has_sizes: bool
    image_url: Optional[str] = None
    # Sum of sizes for sized products
    stock: int = Field(validation_alias="available_stock")
    sizes: List[SizeStock] = []
