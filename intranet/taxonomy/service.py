"""Taxonomy service - admin-gated mutations over the store."""

from typing import Optional

from intranet.auth.identity import require_admin
from intranet.auth.schemas import Role

from .schemas import (
    Category,
    CategoryCreate,
    Link,
    LinkCreate,
    LinkUpdate,
    NodeUpdate,
    SubCategory,
    SubCategoryCreate,
    SubSubCategory,
    SubSubCategoryCreate,
    TaxonomyTree,
)
from .store import TaxonomyStore


class TaxonomyService:
    """
    Composition layer for taxonomy operations.

    Every mutation takes the caller's role explicitly and checks it before
    touching the store. Inputs arrive as validated request models; store
    errors propagate unchanged.
    """

    def __init__(self, store: TaxonomyStore):
        self.store = store

    # Reads need no role

    async def list_links(self, query: Optional[str] = None) -> list[Link]:
        return await self.store.list_links(query)

    async def get_tree(self) -> TaxonomyTree:
        return await self.store.get_tree()

    async def list_categories(self) -> list[Category]:
        return await self.store.list_categories()

    async def list_subcategories(self, category_id: Optional[str] = None) -> list[SubCategory]:
        return await self.store.list_subcategories(category_id)

    async def list_subsubcategories(self, subcategory_id: Optional[str] = None) -> list[SubSubCategory]:
        return await self.store.list_subsubcategories(subcategory_id)

    # Categories

    async def create_category(self, role: Role, payload: CategoryCreate) -> Category:
        require_admin(role)
        return await self.store.create_category(payload.name, payload.description)

    async def update_category(self, role: Role, category_id: str, payload: NodeUpdate) -> Category:
        require_admin(role)
        return await self.store.update_category(category_id, payload.changes())

    async def delete_category(self, role: Role, category_id: str) -> None:
        require_admin(role)
        await self.store.delete_category(category_id)

    # SubCategories

    async def create_subcategory(self, role: Role, payload: SubCategoryCreate) -> SubCategory:
        require_admin(role)
        return await self.store.create_subcategory(payload.name, payload.description, payload.category_id)

    async def update_subcategory(self, role: Role, subcategory_id: str, payload: NodeUpdate) -> SubCategory:
        require_admin(role)
        return await self.store.update_subcategory(subcategory_id, payload.changes())

    async def delete_subcategory(self, role: Role, subcategory_id: str) -> None:
        require_admin(role)
        await self.store.delete_subcategory(subcategory_id)

    # SubSubCategories

    async def create_subsubcategory(self, role: Role, payload: SubSubCategoryCreate) -> SubSubCategory:
        require_admin(role)
        return await self.store.create_subsubcategory(payload.name, payload.description, payload.subcategory_id)

    async def update_subsubcategory(
        self, role: Role, subsubcategory_id: str, payload: NodeUpdate
    ) -> SubSubCategory:
        require_admin(role)
        return await self.store.update_subsubcategory(subsubcategory_id, payload.changes())

    async def delete_subsubcategory(self, role: Role, subsubcategory_id: str) -> None:
        require_admin(role)
        await self.store.delete_subsubcategory(subsubcategory_id)

    # Links

    async def create_link(self, role: Role, payload: LinkCreate, created_by: Optional[str] = None) -> Link:
        require_admin(role)
        return await self.store.create_link(
            label=payload.label,
            url=payload.url,
            description=payload.description,
            category_id=payload.category_id,
            subcategory_id=payload.subcategory_id,
            subsubcategory_id=payload.subsubcategory_id,
            created_by=created_by,
        )

    async def update_link(self, role: Role, link_id: str, payload: LinkUpdate) -> Link:
        require_admin(role)
        return await self.store.update_link(link_id, payload.changes())

    async def delete_link(self, role: Role, link_id: str) -> None:
        require_admin(role)
        await self.store.delete_link(link_id)
