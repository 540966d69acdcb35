"""
Pydantic schemas for request/response validation.
"""
from datetime import datetime
from typing import Dict, List, Literal, Optional
from pydantic import BaseModel, Field


CurrencyLiteral = Literal["coin", "diamond"]


class UserCreateRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., max_length=100)


class UserOut(BaseModel):
    uid: int
    username: str
    email: str
    level: int
    experience: int
    total_spent: int
    created_at: datetime

    model_config = {"from_attributes": True}


class WalletOut(BaseModel):
    user_id: int
    kind: str
    balance: int

    model_config = {"from_attributes": True}


class WalletAdjustRequest(BaseModel):
    """
    Admin adjustment. Positive amounts credit, negative amounts debit;
    a debit larger than the balance is refused.
    """
    kind: CurrencyLiteral
    amount: int = Field(..., description="Signed amount, must not be zero")
    description: Optional[str] = Field(None, max_length=255)


class CurrencyFlowOut(BaseModel):
    id: int
    user_id: int
    kind: str
    amount: int
    balance_after: int
    store_id: int
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class CurrencyFlowListResponse(BaseModel):
    user_id: int
    flows: List[CurrencyFlowOut]
    total: int


class StoreItemOut(BaseModel):
    id: int
    name: str
    price: int
    stock: int
    cost_type: str
    status: str
    tag: str

    model_config = {"from_attributes": True}


class StoreItemListResponse(BaseModel):
    items: List[StoreItemOut]
    total: int
    page: int
    page_size: int


class BuyRequest(BaseModel):
    user_id: int = Field(..., description="Public uid of the buyer")
    item_id: int
    count: int = Field(..., gt=0, description="How many units to buy (must be > 0)")


class PurchaseResponse(BaseModel):
    """Standard response for a completed purchase."""
    status: str = "success"
    user_id: int
    item_id: int
    item_name: str
    count: int
    cost_type: str
    original_price: int
    charged_price: int
    balance_after: int
    stock_after: int
    experience_gained: int
    old_level: int
    new_level: int
    message: str


class BackpackItemOut(BaseModel):
    item_id: int
    name: str
    quantity: int


class BackpackSnapshot(BaseModel):
    user_id: int
    total_items: int
    items: Dict[str, BackpackItemOut]


class ConsumeRequest(BaseModel):
    user_id: int
    item_id: int
    quantity: int = Field(..., gt=0)


class TransferRequest(BaseModel):
    from_user_id: int
    to_user_id: int
    item_id: int
    quantity: int = Field(..., gt=0)


class BackpackEntryOut(BaseModel):
    user_id: int
    item_id: int
    quantity: int

    model_config = {"from_attributes": True}


class LevelConfigOut(BaseModel):
    level: int
    required_exp: int
    coin_reward: int
    diamond_reward: int
    discount_percent: int
    description: str

    model_config = {"from_attributes": True}


class LevelHistoryOut(BaseModel):
    id: int
    user_id: int
    old_level: int
    new_level: int
    exp_gained: int
    experience: int
    coin_rewarded: int
    diamond_rewarded: int
    description: str
    created_at: datetime

    model_config = {"from_attributes": True}


class ExperienceRequest(BaseModel):
    exp: int = Field(..., ge=0)
    description: str = Field("Manual experience grant", max_length=255)


class DiscountResponse(BaseModel):
    user_id: int
    level: int
    original_price: int
    discounted_price: int


class RewardPackageItemIn(BaseModel):
    item_type: Literal["goods", "currency"]
    item_id: int = Field(..., ge=0, description="Store item id, or 0 = diamond / 1 = coin for currency")
    quantity: int = Field(..., gt=0)


class RewardPackageItemOut(BaseModel):
    id: int
    item_type: str
    item_id: int
    quantity: int

    model_config = {"from_attributes": True}


class RewardPackageCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    items: List[RewardPackageItemIn] = Field(default_factory=list)


class RewardPackageItemsRequest(BaseModel):
    items: List[RewardPackageItemIn]


class RewardPackageOut(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    items: List[RewardPackageItemOut] = []
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardPackageListResponse(BaseModel):
    packages: List[RewardPackageOut]
    total: int


class GrantRequest(BaseModel):
    user_id: int
    package_id: int
    source: str = Field(..., min_length=1, max_length=100)


class RewardRecordOut(BaseModel):
    id: int
    user_id: int
    package_id: int
    source: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardRecordListResponse(BaseModel):
    records: List[RewardRecordOut]
    total: int


class RewardFlowOut(BaseModel):
    id: int
    user_id: int
    item_type: str
    item_id: int
    quantity: int
    source: str
    created_at: datetime

    model_config = {"from_attributes": True}


class RewardFlowListResponse(BaseModel):
    flows: List[RewardFlowOut]
    total: int
