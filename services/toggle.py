"""
Two-state toggle over the existence of a relation row.

For each (target, actor) pair a relation (a like, a subscription) is either
ABSENT or PRESENT. `toggle` always moves the pair to the other state, so two
consecutive calls restore the original state. A network retry of the same
call therefore flips twice; callers that need "ensure present" semantics must
read `state` first. The read and the write are separate statements with no
transaction around them: two racing toggles for the same pair can leave a
duplicate row or cancel each other out.
"""

from enum import Enum
from typing import Any, Optional, Type

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.logging_config import get_logger

logger = get_logger(__name__)


class ToggleState(Enum):
    ABSENT = "absent"
    PRESENT = "present"

    @property
    def is_present(self) -> bool:
        return self is ToggleState.PRESENT

    def flipped(self) -> "ToggleState":
        return ToggleState.ABSENT if self.is_present else ToggleState.PRESENT


class RelationToggle:
    """Toggle for one relation table keyed by a target and an actor column"""

    def __init__(self, session: AsyncSession, model: Type[Any], target_field: str, actor_field: str):
        self.session = session
        self.model = model
        self.target_field = target_field
        self.actor_field = actor_field

    async def find(self, target_id: str, actor_id: str) -> Optional[Any]:
        stmt = (
            select(self.model)
            .where(
                getattr(self.model, self.target_field) == target_id,
                getattr(self.model, self.actor_field) == actor_id,
            )
            .limit(1)
        )
        return (await self.session.execute(stmt)).scalars().first()

    async def state(self, target_id: str, actor_id: str) -> ToggleState:
        row = await self.find(target_id, actor_id)
        return ToggleState.PRESENT if row is not None else ToggleState.ABSENT

    async def toggle(self, target_id: str, actor_id: str) -> ToggleState:
        """Flip the pair and return the state it ends in"""
        row = await self.find(target_id, actor_id)
        if row is not None:
            await self.session.delete(row)
            new_state = ToggleState.ABSENT
        else:
            self.session.add(
                self.model(**{self.target_field: target_id, self.actor_field: actor_id})
            )
            new_state = ToggleState.PRESENT
        await self.session.commit()

        logger.info(
            f"{self.model.__name__} toggled to {new_state.value}",
            extra={
                "relation": self.model.__name__,
                "target_id": target_id,
                "actor_id": actor_id,
                "state": new_state.value,
            },
        )
        return new_state
