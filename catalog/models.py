"""
catalog/models.py -- Domain dataclass for the product catalog.

Pure data container. All persistence logic lives in catalog/store.py.
"""

from dataclasses import dataclass
from typing import Optional

PRODUCT_STATUSES = ("Draft", "Published", "Archived")


@dataclass
class Product:
    """A product managed from the admin dashboard.

    created_by / updated_by hold the email of the acting user. Deletion is
    soft: is_deleted flips to True and the row stays for auditing.

    id is None before the record is written to the database.
    """

    name: str
    status: str = "Draft"  # "Draft" | "Published" | "Archived"
    description: Optional[str] = None
    created_by: str = ""
    updated_by: Optional[str] = None
    id: Optional[int] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    updated_at: str = ""  # ISO 8601, set by store on every write
    is_deleted: bool = False
