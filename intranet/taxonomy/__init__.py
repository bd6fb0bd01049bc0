"""Link taxonomy: categories, subcategories, sub-subcategories and links."""

from .ordering import append_sibling, next_order
from .service import TaxonomyService
from .store import DeletePolicy, TaxonomyStore

__all__ = [
    "TaxonomyService",
    "TaxonomyStore",
    "DeletePolicy",
    "append_sibling",
    "next_order",
]
