from pydantic import BaseModel, Field, validator
from typing import Optional, List

# Base Category Schema
class CategoryBase(BaseModel):
    description: Optional[str] = Field(None, max_length=2000)
    image: Optional[str] = Field(None, max_length=500)
    meta_title: Optional[str] = Field(None, max_length=200)
    meta_description: Optional[str] = Field(None, max_length=500)
    keywords: Optional[List[str]] = None
    icon: Optional[str] = Field(None, max_length=100)
    color: Optional[str] = Field(None, max_length=50)

# Category Creation Schema
class CategoryCreate(CategoryBase):
    name: str = Field(..., min_length=2, max_length=100, description="Name must be at least 2 characters")
    parent_id: Optional[str] = None
    is_active: bool = True
    sort_order: int = 0

    @validator('name')
    def validate_name(cls, v):
        if not v or len(v.strip()) < 2:
            raise ValueError('Name must be at least 2 characters')
        return v.strip()

    @validator('parent_id')
    def validate_parent_id(cls, v):
        # An empty string from a form means "no parent"
        return v or None

# Category Update Schema
class CategoryUpdate(CategoryBase):
    category_id: str = Field(..., min_length=1)
    name: Optional[str] = Field(None, min_length=2, max_length=100)
    parent_id: Optional[str] = None
    is_active: Optional[bool] = None
    sort_order: Optional[int] = None

    @validator('name')
    def validate_name(cls, v):
        if v is not None and len(v.strip()) < 2:
            raise ValueError('Name must be at least 2 characters')
        return v.strip() if v else v

    @validator('parent_id')
    def validate_parent_id(cls, v):
        return v or None

    def changes(self) -> dict:
        """Fields the caller actually sent, minus the target id"""
        data = self.dict(exclude_unset=True)
        data.pop("category_id", None)
        return data
