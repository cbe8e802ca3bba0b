from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict


class RewardType(str, Enum):
    VOUCHER = "voucher"
    PRODUCT = "product"
    TRAVEL = "travel"
    OTHER = "other"


class Product(BaseModel):
    id: int
    name: str
    point_value: int = Field(..., gt=0)
    active: bool = True

    model_config = ConfigDict(from_attributes=True)


class Reward(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    type: RewardType = RewardType.VOUCHER
    cost: int = Field(..., gt=0)
    active: bool = True

    model_config = ConfigDict(from_attributes=True)


class Badge(BaseModel):
    id: int
    name: str
    icon: str = "star"
    description: Optional[str] = None
    required_points: int = Field(default=0, ge=0)
    min_installations: int = Field(default=0, ge=0)
    min_level: int = Field(default=0, ge=0)
    active: bool = True

    model_config = ConfigDict(from_attributes=True)


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=3)
    point_value: int = Field(..., gt=0)
    active: bool = True


class UpdateProductRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3)
    point_value: Optional[int] = Field(default=None, gt=0)
    active: Optional[bool] = None


class RegisterCodesRequest(BaseModel):
    tokens: list[str] = Field(..., min_length=1)


class CreateRewardRequest(BaseModel):
    name: str = Field(..., min_length=3)
    description: Optional[str] = None
    type: RewardType = RewardType.VOUCHER
    cost: int = Field(..., gt=0)
    active: bool = True


class CreateBadgeRequest(BaseModel):
    name: str = Field(..., min_length=3)
    icon: str = "star"
    description: Optional[str] = None
    required_points: int = Field(default=0, ge=0)
    min_installations: int = Field(default=0, ge=0)
    min_level: int = Field(default=0, ge=0)
    active: bool = True

    model_config = ConfigDict(json_schema_extra={
        "example": {
            "name": "Gold Installer",
            "icon": "award",
            "description": "Complete 5 installations",
            "min_installations": 5,
        }
    })


class UpdateBadgeRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=3)
    icon: Optional[str] = None
    description: Optional[str] = None
    required_points: Optional[int] = Field(default=None, ge=0)
    min_installations: Optional[int] = Field(default=None, ge=0)
    min_level: Optional[int] = Field(default=None, ge=0)
    active: Optional[bool] = None
