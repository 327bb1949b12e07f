import enum
from typing import Any, Callable, Optional

from sqlalchemy import Column, Select, delete, func, select, update
from sqlalchemy.orm import Session


class DeletePolicy(str, enum.Enum):
    """What deleting a parent row does to the rows that reference it."""

    CASCADE_DELETE = "cascade_delete"
    UNLINK = "unlink"
    RESTRICT = "restrict"


# The product foreign keys carry no ON DELETE action; each policy below is
# applied as an explicit step by the operation that deletes the parent.
CATEGORY_PRODUCTS = DeletePolicy.CASCADE_DELETE
SUPPLIER_PRODUCTS = DeletePolicy.UNLINK
PRODUCT_ORDER_ITEMS = DeletePolicy.RESTRICT
ORDER_ITEMS = DeletePolicy.CASCADE_DELETE


def apply_delete_policy(
    db: Session,
    policy: DeletePolicy,
    fk_column: Column,
    parent: Any,
    on_restrict: Optional[Callable[[int], Exception]] = None,
) -> int:
    """Apply ``policy`` to the child rows whose ``fk_column`` points at ``parent``.

    ``parent`` is a single id or a SELECT of ids. Returns the number of child
    rows deleted, unlinked, or (for RESTRICT) found. RESTRICT raises
    ``on_restrict(count)`` when any child row exists.
    """
    table = fk_column.table
    if isinstance(parent, Select):
        criterion = fk_column.in_(parent)
    else:
        criterion = fk_column == parent

    if policy is DeletePolicy.CASCADE_DELETE:
        return db.execute(delete(table).where(criterion)).rowcount

    if policy is DeletePolicy.UNLINK:
        return db.execute(
            update(table).where(criterion).values({fk_column.name: None})
        ).rowcount

    count = db.scalar(select(func.count()).select_from(table).where(criterion)) or 0
    if count and on_restrict is not None:
        raise on_restrict(count)
    return count
