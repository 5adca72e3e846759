"""
Database Schemas

Pydantic models for the `product` MongoDB collection.
Request bodies are validated against these models before anything is written,
so a document that breaks a constraint never reaches the database.
"""
from typing import Annotated, List, Optional, Union

from pydantic import BaseModel, Field, StringConstraints, field_validator

ProductName = Annotated[str, StringConstraints(strip_whitespace=True, min_length=1)]
ProductDescription = Annotated[str, StringConstraints(min_length=8)]
# whole numbers stay int, so values come back as sent
Number = Union[int, float]

# ---------- Product Schemas ----------

class VarietyIn(BaseModel):
    size: Optional[Number] = None
    color: Optional[str] = None
    quantity: Optional[Number] = None
    images: List[str] = Field(default_factory=list, description="Image URLs or paths")
    price: Optional[Number] = None

class ProductCreate(BaseModel):
    name: ProductName = Field(..., description="Product name")
    description: ProductDescription = Field(..., description="At least 8 characters")
    varieties: List[VarietyIn] = Field(default_factory=list)

class ProductUpdate(BaseModel):
    """Partial update. Fields left out of the body are left untouched.

    `uploaded_at` (and the legacy `date_uploaded`) are not fields here, so
    they are dropped from incoming bodies.
    """
    name: Optional[ProductName] = None
    description: Optional[ProductDescription] = None
    varieties: Optional[List[VarietyIn]] = None

    @field_validator("name", "description")
    @classmethod
    def not_null(cls, value):
        # only runs for values present in the body
        if value is None:
            raise ValueError("may not be null")
        return value
