"""Request and entity schemas for the link taxonomy."""

from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

NAME_MAX_LENGTH = 200
DESCRIPTION_MAX_LENGTH = 2000
URL_MAX_LENGTH = 2048


def clean_required(value: Optional[str], field: str = "Name") -> str:
    """Trim a required text field; reject None, empty and whitespace-only."""
    if value is None or not value.strip():
        raise ValueError(f"{field} is required")
    return value.strip()


def clean_optional(value: Optional[str]) -> Optional[str]:
    """Trim an optional text field; empty becomes None."""
    if value is None:
        return None
    return value.strip() or None


# =============================================================================
# Request Models
# =============================================================================


class NodeCreate(BaseModel):
    """Fields shared by every taxonomy node on creation."""

    name: str = Field(..., max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        return clean_required(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_optional(v)


class CategoryCreate(NodeCreate):
    """Request schema for creating a category"""


class SubCategoryCreate(NodeCreate):
    """Request schema for creating a subcategory"""

    category_id: str = Field(..., min_length=1, description="Parent category ID")


class SubSubCategoryCreate(NodeCreate):
    """Request schema for creating a sub-subcategory"""

    subcategory_id: str = Field(..., min_length=1, description="Parent subcategory ID")


class NodeUpdate(BaseModel):
    """
    Partial update for any taxonomy node.

    Omitted fields stay unchanged. An empty description clears it.
    """

    name: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: Optional[str]) -> str:
        return clean_required(v)

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_optional(v)

    def changes(self) -> dict[str, Any]:
        """Only the fields the caller actually sent."""
        return self.model_dump(exclude_unset=True)


class LinkCreate(BaseModel):
    """Request schema for creating a link. At most one parent may be set."""

    label: str = Field(..., max_length=NAME_MAX_LENGTH)
    url: str = Field(..., max_length=URL_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    subsubcategory_id: Optional[str] = None

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: str) -> str:
        return clean_required(v, "Label")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        return clean_required(v, "URL")

    @field_validator("description", "category_id", "subcategory_id", "subsubcategory_id")
    @classmethod
    def validate_optional(cls, v: Optional[str]) -> Optional[str]:
        return clean_optional(v)

    @model_validator(mode="after")
    def validate_single_parent(self) -> "LinkCreate":
        parents = [self.category_id, self.subcategory_id, self.subsubcategory_id]
        if sum(1 for p in parents if p) > 1:
            raise ValueError("At most one parent category may be specified")
        return self


class LinkUpdate(BaseModel):
    """Partial update for a link. ``order`` is an explicit admin reorder."""

    label: Optional[str] = Field(None, max_length=NAME_MAX_LENGTH)
    url: Optional[str] = Field(None, max_length=URL_MAX_LENGTH)
    description: Optional[str] = Field(None, max_length=DESCRIPTION_MAX_LENGTH)
    order: Optional[int] = Field(None, ge=1)

    @field_validator("label")
    @classmethod
    def validate_label(cls, v: Optional[str]) -> str:
        return clean_required(v, "Label")

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: Optional[str]) -> str:
        return clean_required(v, "URL")

    @field_validator("description")
    @classmethod
    def validate_description(cls, v: Optional[str]) -> Optional[str]:
        return clean_optional(v)

    @field_validator("order")
    @classmethod
    def validate_order(cls, v: Optional[int]) -> int:
        if v is None:
            raise ValueError("Order cannot be null")
        return v

    def changes(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


# =============================================================================
# Entity Models
# =============================================================================


class Category(BaseModel):
    """Top-level link category"""

    id: str
    name: str
    description: Optional[str] = None
    order: int
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Category":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            order=row["sort_order"],
            created_at=row.get("created_at"),
        )


class SubCategory(BaseModel):
    """Second-level category, ordered within its category"""

    id: str
    name: str
    description: Optional[str] = None
    category_id: str
    order: int
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "SubCategory":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            category_id=row["category_id"],
            order=row["sort_order"],
            created_at=row.get("created_at"),
        )


class SubSubCategory(BaseModel):
    """Third-level category, ordered within its subcategory"""

    id: str
    name: str
    description: Optional[str] = None
    subcategory_id: str
    order: int
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "SubSubCategory":
        return cls(
            id=row["id"],
            name=row["name"],
            description=row.get("description"),
            subcategory_id=row["subcategory_id"],
            order=row["sort_order"],
            created_at=row.get("created_at"),
        )


class Link(BaseModel):
    """Quick link, optionally filed under one taxonomy node"""

    id: str
    label: str
    url: str
    description: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    subsubcategory_id: Optional[str] = None
    order: int
    created_by: Optional[str] = None
    created_at: Optional[str] = None

    @classmethod
    def from_row(cls, row: dict) -> "Link":
        return cls(
            id=row["id"],
            label=row["label"],
            url=row["url"],
            description=row.get("description"),
            category_id=row.get("category_id"),
            subcategory_id=row.get("subcategory_id"),
            subsubcategory_id=row.get("subsubcategory_id"),
            order=row["sort_order"],
            created_by=row.get("created_by"),
            created_at=row.get("created_at"),
        )


# =============================================================================
# Tree / Response Models
# =============================================================================


class SubSubCategoryNode(SubSubCategory):
    links: list[Link] = Field(default_factory=list)


class SubCategoryNode(SubCategory):
    links: list[Link] = Field(default_factory=list)
    subsubcategories: list[SubSubCategoryNode] = Field(default_factory=list)


class CategoryNode(Category):
    links: list[Link] = Field(default_factory=list)
    subcategories: list[SubCategoryNode] = Field(default_factory=list)


class TaxonomyTree(BaseModel):
    """Whole taxonomy, nested and ordered"""

    categories: list[CategoryNode] = Field(default_factory=list)
    unfiled_links: list[Link] = Field(default_factory=list)


class OkResponse(BaseModel):
    """Confirmation for deletes"""

    ok: bool = True
