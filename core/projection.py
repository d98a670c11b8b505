"""
Relational projection of stored entities into response shapes.

A `Projector` is a small query builder over one base model. It reproduces the
stages of a document-database aggregation pipeline on top of SQLAlchemy, with
the stage order fixed:

    match -> owner lookup -> derived fields -> sort -> paginate -> shape

- match: criteria on the base model only. Relations are expressed as
  `IN (subquery)` so that the total count and the page use identical criteria.
- owner lookup: left join on `user`, projecting only the public sub-profile
  `{id, fullName, userName, avatar}`. A dangling reference gives `None`.
- derived fields: correlated scalar subqueries. `count` counts related rows
  (0 when none); `viewer_flag` tests whether a related row exists for
  (entity, viewer). A missing viewer makes the flag `False` without any SQL.
  Dotted keys such as `owner.subscribersCount` land inside the owner
  projection.
- sort: an allowed caller key plus the stable fallback
  `created_at desc, id desc`.
- paginate: offset `(page - 1) * limit`, applied after filtering and sorting.

Nothing here writes to the database.
"""

from math import ceil
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

from sqlalchemy import asc, desc, func, literal, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from core.exceptions import ValidationError
from core.models import User
from core.validation import PageRequest

OWNER_PROFILE_FIELDS: Dict[str, str] = {
    "id": "id",
    "fullName": "full_name",
    "userName": "username",
    "avatar": "avatar",
}

_OWNER_PREFIX = "__owner__"


class _Derived:
    __slots__ = ("key", "expression", "coerce", "constant")

    def __init__(self, key: str, expression: Any, coerce: Callable[[Any], Any], constant: Any = None):
        self.key = key
        self.expression = expression
        self.coerce = coerce
        self.constant = constant

    @property
    def label(self) -> str:
        return self.key.replace(".", "__")


def _as_count(value: Any) -> int:
    return int(value or 0)


def page_payload(docs: List[Dict[str, Any]], total: int, page_request: PageRequest) -> Dict[str, Any]:
    """Pagination envelope; `totalDocs == 0` is the explicit empty marker"""
    total_pages = ceil(total / page_request.limit) if total else 0
    page = page_request.page
    return {
        "docs": docs,
        "totalDocs": total,
        "limit": page_request.limit,
        "page": page,
        "totalPages": total_pages,
        "hasPrevPage": page > 1,
        "hasNextPage": page < total_pages,
        "prevPage": page - 1 if page > 1 else None,
        "nextPage": page + 1 if page < total_pages else None,
    }


class Projector:
    """Composable read-model query over a single base model"""

    def __init__(
        self,
        model: Any,
        fields: Dict[str, str],
        sortable: Optional[Dict[str, str]] = None,
    ):
        self.model = model
        self.fields = dict(fields)
        self.sortable = dict(sortable or {})
        self._criteria: List[Any] = []
        self._owner: Optional[Tuple[str, Any]] = None
        self._derived: List[_Derived] = []
        self._order: Optional[Tuple[str, str]] = None

    # -- match ---------------------------------------------------------

    def match(self, *criteria: Any) -> "Projector":
        self._criteria.extend(criteria)
        return self

    # -- lookup --------------------------------------------------------

    def lookup_owner(self, column: Any, key: str = "owner") -> "Projector":
        self._owner = (key, column)
        return self

    # -- derived fields ------------------------------------------------

    def derive(self, key: str, expression: Any, coerce: Callable[[Any], Any] = lambda v: v) -> "Projector":
        self._derived.append(_Derived(key, expression, coerce))
        return self

    def constant(self, key: str, value: Any) -> "Projector":
        self._derived.append(_Derived(key, None, lambda v: v, constant=value))
        return self

    def count(self, key: str, related: Any, foreign_key: Any, local: Any = None) -> "Projector":
        local = self.model.id if local is None else local
        subquery = (
            select(func.count())
            .select_from(related)
            .where(foreign_key == local)
            .correlate(self.model)
            .scalar_subquery()
        )
        return self.derive(key, subquery, _as_count)

    def viewer_flag(
        self,
        key: str,
        related: Any,
        foreign_key: Any,
        actor_column: Any,
        viewer_id: Optional[str],
        local: Any = None,
    ) -> "Projector":
        if viewer_id is None:
            return self.constant(key, False)
        local = self.model.id if local is None else local
        flag = (
            select(literal(1))
            .select_from(related)
            .where(foreign_key == local, actor_column == viewer_id)
            .correlate(self.model)
            .exists()
        )
        return self.derive(key, flag, bool)

    # -- sort ----------------------------------------------------------

    def sort(self, sort_by: Optional[str], sort_type: str = "desc") -> "Projector":
        if sort_by is None:
            self._order = None
            return self
        if sort_by not in self.sortable and sort_by not in self._derived_keys():
            raise ValidationError(
                f"Cannot sort by '{sort_by}'",
                errors=[
                    {
                        "field": "sortBy",
                        "reason": "allowed: "
                        + ", ".join(sorted(self.sortable) + self._derived_keys()),
                    }
                ],
            )
        self._order = (sort_by, sort_type)
        return self

    def _derived_keys(self) -> List[str]:
        return [d.key for d in self._derived if d.expression is not None and "." not in d.key]

    def _order_clauses(self) -> List[Any]:
        clauses = []
        if self._order is not None:
            key, direction = self._order
            if key in self.sortable:
                column = getattr(self.model, self.sortable[key])
            else:
                column = next(d.expression for d in self._derived if d.key == key)
            clauses.append(asc(column) if direction == "asc" else desc(column))
        clauses.extend([desc(self.model.created_at), desc(self.model.id)])
        return clauses

    # -- statements ----------------------------------------------------

    def statement(self):
        columns: List[Any] = [self.model]
        owner_alias = None
        if self._owner is not None:
            owner_alias = aliased(User)
            columns.extend(
                getattr(owner_alias, attr).label(f"{_OWNER_PREFIX}{key}")
                for key, attr in OWNER_PROFILE_FIELDS.items()
            )
        columns.extend(
            d.expression.label(d.label) for d in self._derived if d.expression is not None
        )

        stmt = select(*columns)
        if owner_alias is not None:
            stmt = stmt.outerjoin(owner_alias, owner_alias.id == self._owner[1])
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        return stmt.order_by(*self._order_clauses())

    def count_statement(self):
        stmt = select(func.count()).select_from(self.model)
        if self._criteria:
            stmt = stmt.where(*self._criteria)
        return stmt

    # -- shape ---------------------------------------------------------

    def _shape(self, row: Any) -> Dict[str, Any]:
        mapping = row._mapping
        entity = mapping[self.model]
        doc: Dict[str, Any] = {key: getattr(entity, attr) for key, attr in self.fields.items()}

        if self._owner is not None:
            owner_key = self._owner[0]
            profile = {
                key: mapping[f"{_OWNER_PREFIX}{key}"] for key in OWNER_PROFILE_FIELDS
            }
            doc[owner_key] = profile if profile["id"] is not None else None

        for derived in self._derived:
            if derived.expression is None:
                value = derived.constant
            else:
                value = derived.coerce(mapping[derived.label])
            if "." in derived.key:
                parent, child = derived.key.split(".", 1)
                if isinstance(doc.get(parent), dict):
                    doc[parent][child] = value
            else:
                doc[derived.key] = value
        return doc

    # -- execution -----------------------------------------------------

    async def all(self, session: AsyncSession) -> List[Dict[str, Any]]:
        result = await session.execute(self.statement())
        return [self._shape(row) for row in result.all()]

    async def first(self, session: AsyncSession) -> Optional[Dict[str, Any]]:
        result = await session.execute(self.statement().limit(1))
        row = result.first()
        return self._shape(row) if row is not None else None

    async def paginate(self, session: AsyncSession, page_request: PageRequest) -> Dict[str, Any]:
        total = (await session.execute(self.count_statement())).scalar_one()
        stmt = self.statement().offset(page_request.skip).limit(page_request.limit)
        result = await session.execute(stmt)
        docs = [self._shape(row) for row in result.all()]
        return page_payload(docs, total, page_request)


def order_like(docs: Sequence[Dict[str, Any]], ids: Sequence[str]) -> List[Dict[str, Any]]:
    """Reorder projected docs to follow `ids`, dropping ids with no doc"""
    by_id = {doc["id"]: doc for doc in docs}
    return [by_id[i] for i in ids if i in by_id]
