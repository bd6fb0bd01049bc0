"""Link taxonomy persistence on Supabase.

Tables (see sql/schema.sql):
    link_categories, link_subcategories, link_subsubcategories, links

Every row carries ``sort_order``. The ``(parent, sort_order)`` pairs are
unique in the database; inserts allocate the order with
``ordering.append_sibling`` and retry on a unique violation.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from loguru import logger
from postgrest import APIResponse
from postgrest.exceptions import APIError
from supabase import AsyncClient

from intranet.config import config
from intranet.errors import Conflict, InternalError, NotFound, ValidationError
from .ordering import OrderTaken, append_sibling
from .schemas import (
    Category,
    CategoryNode,
    Link,
    SubCategory,
    SubCategoryNode,
    SubSubCategory,
    SubSubCategoryNode,
    TaxonomyTree,
    clean_optional,
    clean_required,
)

CATEGORIES = "link_categories"
SUBCATEGORIES = "link_subcategories"
SUBSUBCATEGORIES = "link_subsubcategories"
LINKS = "links"

UNIQUE_VIOLATION = "23505"
FOREIGN_KEY_VIOLATION = "23503"
INVALID_TEXT_REPRESENTATION = "22P02"

CASCADE_DELETE_FUNCTION = "delete_link_node_cascade"

LINK_PARENT_COLUMNS = ("category_id", "subcategory_id", "subsubcategory_id")


class DeletePolicy(str, Enum):
    """What deleting a node that still has children does."""

    REJECT = "reject"
    CASCADE = "cascade"


@dataclass(frozen=True)
class _Level:
    table: str
    label: str
    parent_column: Optional[str]
    link_column: str
    child: Optional["_Level"] = None

    @property
    def name(self) -> str:
        """Level name understood by the cascade delete function."""
        return self.link_column.removesuffix("_id")


SUBSUBCATEGORY_LEVEL = _Level(SUBSUBCATEGORIES, "SubSubCategory", "subcategory_id", "subsubcategory_id")
SUBCATEGORY_LEVEL = _Level(SUBCATEGORIES, "SubCategory", "category_id", "subcategory_id", SUBSUBCATEGORY_LEVEL)
CATEGORY_LEVEL = _Level(CATEGORIES, "Category", None, "category_id", SUBCATEGORY_LEVEL)

LEVEL_BY_LINK_COLUMN = {
    "category_id": CATEGORY_LEVEL,
    "subcategory_id": SUBCATEGORY_LEVEL,
    "subsubcategory_id": SUBSUBCATEGORY_LEVEL,
}


def _required(value: Optional[str], field: str) -> str:
    try:
        return clean_required(value, field)
    except ValueError as e:
        raise ValidationError(str(e)) from e


def _quote_filter_value(value: str) -> str:
    """
    Quote a user string as a literal substring pattern for a PostgREST ``or`` filter.

    ``%``, ``_`` and ``\\`` are escaped so they match themselves in ``ilike``,
    then every backslash is doubled for PostgREST's quoted-value unescaping.
    ``*`` (PostgREST's wildcard alias) and ``"`` are dropped.
    """
    cleaned = "".join(ch for ch in value if ch not in '*"')
    like = "".join(f"\\{ch}" if ch in "%_\\" else ch for ch in cleaned)
    escaped = like.replace("\\", "\\\\")
    return f'"%{escaped}%"'


class TaxonomyStore:
    """Owns the structural integrity of the link taxonomy."""

    def __init__(
        self,
        client: AsyncClient,
        retry_attempts: Optional[int] = None,
        delete_policy: Optional[str] = None,
    ):
        """
        Initialize the store with a Supabase client.

        Args:
            client: Supabase AsyncClient (service role)
            retry_attempts: Order allocation attempts per insert
            delete_policy: "reject" or "cascade"
        """
        self.client = client
        self.retry_attempts = retry_attempts or config.ORDER_RETRY_ATTEMPTS
        try:
            self.delete_policy = DeletePolicy(delete_policy or config.DELETE_POLICY)
        except ValueError as e:
            raise ValueError(
                f"Unknown delete policy {delete_policy or config.DELETE_POLICY!r}; "
                "expected 'reject' or 'cascade'"
            ) from e

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _execute(self, query: Any, action: str) -> Any:
        """
        Run a query; constraint violations propagate, anything else is InternalError.

        An id the database cannot parse as a key (22P02) matches no row, so
        the query yields an empty result and callers report NotFound.
        """
        try:
            return await query.execute()
        except APIError as e:
            if e.code in (UNIQUE_VIOLATION, FOREIGN_KEY_VIOLATION):
                raise
            if e.code == INVALID_TEXT_REPRESENTATION:
                logger.debug(f"Malformed id while trying to {action}: {e.message}")
                return APIResponse(data=[], count=None)
            logger.exception(f"Supabase error while trying to {action}")
            raise InternalError(f"Failed to {action}") from e
        except Exception as e:
            logger.exception(f"Failed to {action}")
            raise InternalError(f"Failed to {action}") from e

    async def _get_row(self, table: str, row_id: str, label: str) -> dict:
        response = await self._execute(
            self.client.table(table).select("*").eq("id", row_id).limit(1),
            f"load {label}",
        )
        if not response.data:
            raise NotFound(f"{label} not found")
        return response.data[0]

    def _scoped(self, query: Any, scope: Mapping[str, Optional[str]]) -> Any:
        for column, value in scope.items():
            query = query.eq(column, value) if value is not None else query.is_(column, "null")
        return query

    async def _insert_sibling(
        self, table: str, row: dict, scope: Mapping[str, Optional[str]], label: str
    ) -> dict:
        """Insert ``row`` as the last sibling within ``scope``."""

        async def read_orders() -> list[int]:
            query = self.client.table(table).select("sort_order")
            query = self._scoped(query, scope).order("sort_order", desc=True).limit(1)
            response = await self._execute(query, f"read {label} order")
            return [r["sort_order"] for r in response.data or []]

        async def insert(order: int) -> dict:
            try:
                response = await self._execute(
                    self.client.table(table).insert({**row, "sort_order": order}),
                    f"create {label}",
                )
            except APIError as e:
                if e.code == UNIQUE_VIOLATION:
                    raise OrderTaken(order) from e
                # Parent deleted between the existence check and the insert
                raise NotFound(f"Parent of {label} not found") from e
            if not response.data:
                raise InternalError(f"Failed to create {label}")
            return response.data[0]

        return await append_sibling(read_orders, insert, self.retry_attempts)

    def _node_changes(self, changes: Mapping[str, Any]) -> dict:
        unknown = set(changes) - {"name", "description"}
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        values = {}
        if "name" in changes:
            values["name"] = _required(changes["name"], "Name")
        if "description" in changes:
            values["description"] = clean_optional(changes["description"])
        return values

    async def _update_node(self, level: _Level, node_id: str, changes: Mapping[str, Any]) -> dict:
        values = self._node_changes(changes)
        if not values:
            return await self._get_row(level.table, node_id, level.label)

        response = await self._execute(
            self.client.table(level.table).update(values).eq("id", node_id),
            f"update {level.label}",
        )
        if not response.data:
            raise NotFound(f"{level.label} not found")
        logger.info(f"Updated {level.label} {node_id}: {sorted(values)}")
        return response.data[0]

    async def _has_content(self, level: _Level, node_id: str) -> bool:
        links = await self._execute(
            self.client.table(LINKS).select("id").eq(level.link_column, node_id).limit(1),
            f"check {level.label} links",
        )
        if links.data:
            return True
        if level.child is None:
            return False
        children = await self._execute(
            self.client.table(level.child.table).select("id").eq(level.child.parent_column, node_id).limit(1),
            f"check {level.label} children",
        )
        return bool(children.data)

    async def _delete_node(self, level: _Level, node_id: str) -> None:
        await self._get_row(level.table, node_id, level.label)

        if self.delete_policy is DeletePolicy.REJECT:
            if await self._has_content(level, node_id):
                raise Conflict(f"Cannot delete {level.label} with content")
            query = self.client.table(level.table).delete().eq("id", node_id)
        else:
            # Links and descendants go in the same transaction as the node
            query = self.client.rpc(
                CASCADE_DELETE_FUNCTION, {"node_level": level.name, "node_id": node_id}
            )

        try:
            response = await self._execute(query, f"delete {level.label}")
        except APIError as e:
            # A child was added concurrently; nothing was deleted
            raise Conflict(f"Cannot delete {level.label} with content") from e
        if not response.data:
            raise NotFound(f"{level.label} not found")
        logger.info(f"Deleted {level.label} {node_id} (policy={self.delete_policy.value})")

    # =========================================================================
    # Categories
    # =========================================================================

    async def create_category(self, name: str, description: Optional[str] = None) -> Category:
        row = {"name": _required(name, "Name"), "description": clean_optional(description)}
        created = await self._insert_sibling(CATEGORIES, row, {}, "Category")
        logger.info(f"Created Category {created['id']} (order {created['sort_order']})")
        return Category.from_row(created)

    async def get_category(self, category_id: str) -> Category:
        return Category.from_row(await self._get_row(CATEGORIES, category_id, "Category"))

    async def list_categories(self) -> list[Category]:
        response = await self._execute(
            self.client.table(CATEGORIES).select("*").order("sort_order"),
            "list categories",
        )
        return [Category.from_row(r) for r in response.data or []]

    async def update_category(self, category_id: str, changes: Mapping[str, Any]) -> Category:
        """
        Partially update a category.

        Args:
            category_id: Target category
            changes: Any of ``name`` / ``description``; omitted keys are kept,
                an empty description clears it

        Raises:
            ValidationError: If a supplied name is empty after trimming
            NotFound: If the category does not exist
        """
        return Category.from_row(await self._update_node(CATEGORY_LEVEL, category_id, changes))

    async def delete_category(self, category_id: str) -> None:
        await self._delete_node(CATEGORY_LEVEL, category_id)

    # =========================================================================
    # SubCategories
    # =========================================================================

    async def create_subcategory(
        self, name: str, description: Optional[str], category_id: str
    ) -> SubCategory:
        """
        Create a subcategory as the last sibling under its category.

        Raises:
            ValidationError: If the name is empty after trimming
            NotFound: If the category does not exist
        """
        row = {
            "name": _required(name, "Name"),
            "description": clean_optional(description),
            "category_id": category_id,
        }
        await self._get_row(CATEGORIES, category_id, "Category")
        created = await self._insert_sibling(
            SUBCATEGORIES, row, {"category_id": category_id}, "SubCategory"
        )
        logger.info(f"Created SubCategory {created['id']} under {category_id} (order {created['sort_order']})")
        return SubCategory.from_row(created)

    async def list_subcategories(self, category_id: Optional[str] = None) -> list[SubCategory]:
        query = self.client.table(SUBCATEGORIES).select("*")
        if category_id:
            query = query.eq("category_id", category_id)
        else:
            query = query.order("category_id")
        response = await self._execute(query.order("sort_order"), "list subcategories")
        return [SubCategory.from_row(r) for r in response.data or []]

    async def update_subcategory(self, subcategory_id: str, changes: Mapping[str, Any]) -> SubCategory:
        return SubCategory.from_row(await self._update_node(SUBCATEGORY_LEVEL, subcategory_id, changes))

    async def delete_subcategory(self, subcategory_id: str) -> None:
        await self._delete_node(SUBCATEGORY_LEVEL, subcategory_id)

    # =========================================================================
    # SubSubCategories
    # =========================================================================

    async def create_subsubcategory(
        self, name: str, description: Optional[str], subcategory_id: str
    ) -> SubSubCategory:
        row = {
            "name": _required(name, "Name"),
            "description": clean_optional(description),
            "subcategory_id": subcategory_id,
        }
        await self._get_row(SUBCATEGORIES, subcategory_id, "SubCategory")
        created = await self._insert_sibling(
            SUBSUBCATEGORIES, row, {"subcategory_id": subcategory_id}, "SubSubCategory"
        )
        logger.info(
            f"Created SubSubCategory {created['id']} under {subcategory_id} (order {created['sort_order']})"
        )
        return SubSubCategory.from_row(created)

    async def list_subsubcategories(self, subcategory_id: Optional[str] = None) -> list[SubSubCategory]:
        query = self.client.table(SUBSUBCATEGORIES).select("*")
        if subcategory_id:
            query = query.eq("subcategory_id", subcategory_id)
        else:
            query = query.order("subcategory_id")
        response = await self._execute(query.order("sort_order"), "list sub-subcategories")
        return [SubSubCategory.from_row(r) for r in response.data or []]

    async def update_subsubcategory(self, subsubcategory_id: str, changes: Mapping[str, Any]) -> SubSubCategory:
        return SubSubCategory.from_row(
            await self._update_node(SUBSUBCATEGORY_LEVEL, subsubcategory_id, changes)
        )

    async def delete_subsubcategory(self, subsubcategory_id: str) -> None:
        await self._delete_node(SUBSUBCATEGORY_LEVEL, subsubcategory_id)

    # =========================================================================
    # Links
    # =========================================================================

    async def list_links(self, query: Optional[str] = None) -> list[Link]:
        """
        List links, newest first.

        Args:
            query: Optional free text; case-insensitive match on label or description

        Returns:
            Complete list of matching links
        """
        request = self.client.table(LINKS).select("*")
        if query and query.strip():
            pattern = _quote_filter_value(query.strip())
            request = request.or_(f"label.ilike.{pattern},description.ilike.{pattern}")
        response = await self._execute(request.order("created_at", desc=True), "list links")
        return [Link.from_row(r) for r in response.data or []]

    async def create_link(
        self,
        label: str,
        url: str,
        description: Optional[str] = None,
        category_id: Optional[str] = None,
        subcategory_id: Optional[str] = None,
        subsubcategory_id: Optional[str] = None,
        created_by: Optional[str] = None,
    ) -> Link:
        parents = {
            "category_id": category_id or None,
            "subcategory_id": subcategory_id or None,
            "subsubcategory_id": subsubcategory_id or None,
        }
        given = {column: value for column, value in parents.items() if value}
        if len(given) > 1:
            raise ValidationError("At most one parent category may be specified")

        row = {
            "label": _required(label, "Label"),
            "url": _required(url, "URL"),
            "description": clean_optional(description),
            "created_by": created_by,
            **parents,
        }

        for column, parent_id in given.items():
            level = LEVEL_BY_LINK_COLUMN[column]
            await self._get_row(level.table, parent_id, level.label)

        created = await self._insert_sibling(LINKS, row, given or parents, "Link")
        logger.info(f"Created Link {created['id']} by {created_by} (order {created['sort_order']})")
        return Link.from_row(created)

    async def update_link(self, link_id: str, changes: Mapping[str, Any]) -> Link:
        unknown = set(changes) - {"label", "url", "description", "order"}
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

        values: dict[str, Any] = {}
        if "label" in changes:
            values["label"] = _required(changes["label"], "Label")
        if "url" in changes:
            values["url"] = _required(changes["url"], "URL")
        if "description" in changes:
            values["description"] = clean_optional(changes["description"])
        if "order" in changes:
            order = changes["order"]
            if not isinstance(order, int) or isinstance(order, bool) or order < 1:
                raise ValidationError("Order must be a positive integer")
            values["sort_order"] = order

        if not values:
            return Link.from_row(await self._get_row(LINKS, link_id, "Link"))

        try:
            response = await self._execute(
                self.client.table(LINKS).update(values).eq("id", link_id),
                "update Link",
            )
        except APIError as e:
            raise Conflict("Order already used by a sibling link") from e
        if not response.data:
            raise NotFound("Link not found")
        logger.info(f"Updated Link {link_id}: {sorted(values)}")
        return Link.from_row(response.data[0])

    async def delete_link(self, link_id: str) -> None:
        response = await self._execute(
            self.client.table(LINKS).delete().eq("id", link_id),
            "delete Link",
        )
        if not response.data:
            raise NotFound("Link not found")
        logger.info(f"Deleted Link {link_id}")

    # =========================================================================
    # Tree
    # =========================================================================

    async def get_tree(self) -> TaxonomyTree:
        """Load the whole taxonomy with links, every level ordered."""
        categories = await self.list_categories()
        subcategories = await self.list_subcategories()
        subsubcategories = await self.list_subsubcategories()
        response = await self._execute(
            self.client.table(LINKS).select("*").order("sort_order"),
            "list links",
        )
        links = [Link.from_row(r) for r in response.data or []]

        links_by_parent: dict[tuple[str, str], list[Link]] = {}
        unfiled: list[Link] = []
        for link in links:
            for column in LINK_PARENT_COLUMNS:
                parent_id = getattr(link, column)
                if parent_id:
                    links_by_parent.setdefault((column, parent_id), []).append(link)
                    break
            else:
                unfiled.append(link)

        subsub_nodes: dict[str, list[SubSubCategoryNode]] = {}
        for ssc in sorted(subsubcategories, key=lambda n: n.order):
            subsub_nodes.setdefault(ssc.subcategory_id, []).append(
                SubSubCategoryNode(
                    **ssc.model_dump(),
                    links=links_by_parent.get(("subsubcategory_id", ssc.id), []),
                )
            )

        sub_nodes: dict[str, list[SubCategoryNode]] = {}
        for sc in sorted(subcategories, key=lambda n: n.order):
            sub_nodes.setdefault(sc.category_id, []).append(
                SubCategoryNode(
                    **sc.model_dump(),
                    links=links_by_parent.get(("subcategory_id", sc.id), []),
                    subsubcategories=subsub_nodes.get(sc.id, []),
                )
            )

        return TaxonomyTree(
            categories=[
                CategoryNode(
                    **c.model_dump(),
                    links=links_by_parent.get(("category_id", c.id), []),
                    subcategories=sub_nodes.get(c.id, []),
                )
                for c in categories
            ],
            unfiled_links=unfiled,
        )


__all__ = ["TaxonomyStore", "DeletePolicy"]
