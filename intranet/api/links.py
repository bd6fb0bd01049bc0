from contextlib import contextmanager
from typing import Iterator, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger
from supabase import AsyncClient

from intranet.auth.dependencies import get_supabase_client, require_admin_session
from intranet.auth.schemas import Session
from intranet.errors import ServiceError
from intranet.taxonomy.schemas import (
    Category,
    CategoryCreate,
    Link,
    LinkCreate,
    LinkUpdate,
    NodeUpdate,
    OkResponse,
    SubCategory,
    SubCategoryCreate,
    SubSubCategory,
    SubSubCategoryCreate,
    TaxonomyTree,
)
from intranet.taxonomy.service import TaxonomyService
from intranet.taxonomy.store import TaxonomyStore


router = APIRouter(prefix="/v1/links", tags=["links"])


def get_taxonomy_store(client: AsyncClient = Depends(get_supabase_client)) -> TaxonomyStore:
    return TaxonomyStore(client)


def get_taxonomy_service(store: TaxonomyStore = Depends(get_taxonomy_store)) -> TaxonomyService:
    return TaxonomyService(store)


@contextmanager
def service_errors(action: str) -> Iterator[None]:
    """Map service errors to HTTP errors 1:1; anything else is an opaque 500."""
    try:
        yield
    except HTTPException:
        raise
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception:
        # 🔒 Security: Log full error with stack trace internally, but hide details from user
        logger.exception(f"Failed to {action}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to {action}"
        )


# =============================================================================
# Links
# =============================================================================


@router.get("", response_model=list[Link])
async def list_links(
    q: Optional[str] = Query(None, max_length=200, description="Case-insensitive label/description filter"),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> list[Link]:
    """List links, newest first."""
    with service_errors("fetch links"):
        return await service.list_links(q)


@router.get("/tree", response_model=TaxonomyTree)
async def get_tree(service: TaxonomyService = Depends(get_taxonomy_service)) -> TaxonomyTree:
    """Whole taxonomy with links, nested and ordered."""
    with service_errors("fetch link tree"):
        return await service.get_tree()


@router.post("", response_model=Link)
async def create_link(
    request: LinkCreate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> Link:
    with service_errors("create link"):
        return await service.create_link(session.role, request, created_by=session.email)


@router.patch("/{link_id}", response_model=Link)
async def update_link(
    link_id: str,
    request: LinkUpdate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> Link:
    with service_errors("update link"):
        return await service.update_link(session.role, link_id, request)


@router.delete("/{link_id}", response_model=OkResponse)
async def delete_link(
    link_id: str,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> OkResponse:
    with service_errors("delete link"):
        await service.delete_link(session.role, link_id)
    return OkResponse()


# =============================================================================
# Categories
# =============================================================================


@router.get("/categories", response_model=list[Category])
async def list_categories(service: TaxonomyService = Depends(get_taxonomy_service)) -> list[Category]:
    with service_errors("fetch categories"):
        return await service.list_categories()


@router.post("/categories", response_model=Category)
async def create_category(
    request: CategoryCreate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> Category:
    with service_errors("create category"):
        return await service.create_category(session.role, request)


@router.patch("/categories/{category_id}", response_model=Category)
async def update_category(
    category_id: str,
    request: NodeUpdate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> Category:
    """
    Partially update a category.

    Omitted fields are kept; an empty description clears it.
    """
    with service_errors("update category"):
        return await service.update_category(session.role, category_id, request)


@router.delete("/categories/{category_id}", response_model=OkResponse)
async def delete_category(
    category_id: str,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> OkResponse:
    """Delete a category. Children are rejected or cascaded per DELETE_POLICY."""
    with service_errors("delete category"):
        await service.delete_category(session.role, category_id)
    return OkResponse()


# =============================================================================
# SubCategories
# =============================================================================


@router.get("/subcategories", response_model=list[SubCategory])
async def list_subcategories(
    category_id: Optional[str] = None,
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> list[SubCategory]:
    with service_errors("fetch subcategories"):
        return await service.list_subcategories(category_id)


@router.post("/subcategories", response_model=SubCategory)
async def create_subcategory(
    request: SubCategoryCreate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> SubCategory:
    """Create a subcategory as the last sibling under its category."""
    with service_errors("create subcategory"):
        return await service.create_subcategory(session.role, request)


@router.patch("/subcategories/{subcategory_id}", response_model=SubCategory)
async def update_subcategory(
    subcategory_id: str,
    request: NodeUpdate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> SubCategory:
    with service_errors("update subcategory"):
        return await service.update_subcategory(session.role, subcategory_id, request)


@router.delete("/subcategories/{subcategory_id}", response_model=OkResponse)
async def delete_subcategory(
    subcategory_id: str,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> OkResponse:
    with service_errors("delete subcategory"):
        await service.delete_subcategory(session.role, subcategory_id)
    return OkResponse()


# =============================================================================
# SubSubCategories
# =============================================================================


@router.get("/subsubcategories", response_model=list[SubSubCategory])
async def list_subsubcategories(
    subcategory_id: Optional[str] = None,
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> list[SubSubCategory]:
    with service_errors("fetch sub-subcategories"):
        return await service.list_subsubcategories(subcategory_id)


@router.post("/subsubcategories", response_model=SubSubCategory)
async def create_subsubcategory(
    request: SubSubCategoryCreate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> SubSubCategory:
    with service_errors("create sub-subcategory"):
        return await service.create_subsubcategory(session.role, request)


@router.patch("/subsubcategories/{subsubcategory_id}", response_model=SubSubCategory)
async def update_subsubcategory(
    subsubcategory_id: str,
    request: NodeUpdate,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> SubSubCategory:
    with service_errors("update sub-subcategory"):
        return await service.update_subsubcategory(session.role, subsubcategory_id, request)


@router.delete("/subsubcategories/{subsubcategory_id}", response_model=OkResponse)
async def delete_subsubcategory(
    subsubcategory_id: str,
    session: Session = Depends(require_admin_session),
    service: TaxonomyService = Depends(get_taxonomy_service),
) -> OkResponse:
    with service_errors("delete sub-subcategory"):
        await service.delete_subsubcategory(session.role, subsubcategory_id)
    return OkResponse()
