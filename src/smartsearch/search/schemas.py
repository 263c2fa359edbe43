"""Pydantic schemas for search requests, results and admin responses"""

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from ..models import EntityType


class CategoryResponse(BaseModel):
    """Schema for Category response"""
    id: int
    name: str
    slug: str
    parent_id: Optional[int] = None
    icon: Optional[str] = None
    position: int = 0
    is_active: bool = True

    class Config:
        from_attributes = True


class ShopResponse(BaseModel):
    """Schema for Shop response"""
    id: int
    owner_name: Optional[str] = None
    name: str
    description: Optional[str] = None
    logo_url: Optional[str] = None
    phone: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None
    rating: float = 0.0
    is_approved: bool = False
    created_at: Optional[datetime] = None
    categories: list[CategoryResponse] = Field(default_factory=list)

    class Config:
        from_attributes = True


class ItemResponse(BaseModel):
    """Schema for Item response"""
    id: int
    shop_id: int
    shop: Optional[ShopResponse] = None
    title: str
    description: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    city: Optional[str] = None
    is_active: bool = True
    views: int = 0
    favorites: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @field_validator('tags', mode='before')
    @classmethod
    def default_tags(cls, v: Any) -> Any:
        return v or []


class SearchResultBase(BaseModel):
    """Fields shared by every search result"""
    id: int
    title: str
    score: float = Field(..., ge=0.0, le=1.0, description="Relevance score, 1.0 is best")


class ItemResult(SearchResultBase):
    type: Literal["ITEM"] = "ITEM"
    data: ItemResponse


class ShopResult(SearchResultBase):
    type: Literal["SHOP"] = "SHOP"
    data: ShopResponse


class CategoryResult(SearchResultBase):
    type: Literal["CATEGORY"] = "CATEGORY"
    data: CategoryResponse


SearchResult = Annotated[Union[ItemResult, ShopResult, CategoryResult], Field(discriminator="type")]

RESULT_TYPES = {
    EntityType.ITEM: (ItemResult, ItemResponse),
    EntityType.SHOP: (ShopResult, ShopResponse),
    EntityType.CATEGORY: (CategoryResult, CategoryResponse),
}


def build_result(entity_type: EntityType, entity, score: float):
    """Project an ORM entity and its score into the matching result variant."""
    result_cls, data_cls = RESULT_TYPES[EntityType(entity_type)]
    return result_cls(
        id=entity.id,
        title=entity.title,
        score=min(1.0, max(0.0, float(score))),
        data=data_cls.model_validate(entity),
    )


class SearchRequest(BaseModel):
    """Body for POST /api/search"""
    query: str
    type: Optional[EntityType] = Field(None, description="ITEM, SHOP, CATEGORY, or omitted for all types")
    limit: Optional[int] = Field(None, description="Defaults to SEARCH_DEFAULT_LIMIT")


class SearchResponse(BaseModel):
    """Search results plus whether they came from the keyword fallback"""
    query: str
    total_results: int
    results: list[SearchResult] = Field(default_factory=list)
    is_fallback: bool = False
    message: Optional[str] = None


class ReindexAcceptedResponse(BaseModel):
    status: str = "accepted"
    task_id: str
    scope: str


class ReindexEntityResponse(BaseModel):
    entity_type: EntityType
    entity_id: int
    indexed: bool
    message: str


class ReindexTaskStatusResponse(BaseModel):
    task_id: str
    state: str
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None


class CacheStatsResponse(BaseModel):
    size: int
    hit_rate: float
    hit_count: int
    miss_count: int


class CoverageEntry(BaseModel):
    entity_type: EntityType
    total: int
    indexed: int
    coverage_percent: float


class CoverageResponse(BaseModel):
    coverage: list[CoverageEntry]


class SearchCheckResponse(BaseModel):
    """Result of GET /api/search/test"""
    status: str
    semantic_search_working: bool
    query: str
    results_count: int
    message: Optional[str] = None
