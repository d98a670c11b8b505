"""
Lookup and ownership guards shared by the resource services.

Every mutating path on an owned entity runs the same sequence: validate the
identifier, load the row (404 when absent), then compare the stored owner with
the caller (403 on mismatch). Payload checks come after the ownership check,
so a non-owner is refused whatever the payload.
"""

from typing import Any, Type, TypeVar

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ForbiddenError, NotFoundError
from core.logging_config import get_logger
from core.validation import InputValidator

logger = get_logger(__name__)

T = TypeVar("T")


async def get_or_404(
    session: AsyncSession, model: Type[T], entity_id: Any, resource: str, field: str = "id"
) -> T:
    InputValidator.validate_id(entity_id, field)
    entity = await session.get(model, entity_id)
    if entity is None:
        raise NotFoundError(resource, entity_id)
    return entity


def is_owner(entity: Any, caller_id: Any) -> bool:
    return caller_id is not None and str(entity.owner_id) == str(caller_id)


def ensure_owner(entity: Any, caller_id: Any, action: str = "modify"):
    """Raise ForbiddenError unless `caller_id` owns `entity`"""
    if not is_owner(entity, caller_id):
        resource = type(entity).__name__.lower()
        logger.warning(
            f"Ownership check failed: {caller_id} tried to {action} {resource} {entity.id}",
            extra={"resource": resource, "resource_id": entity.id, "action": action},
        )
        raise ForbiddenError(f"You don't have permission to {action} this {resource}")
