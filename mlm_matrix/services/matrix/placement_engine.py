"""
Matrix placement engine.

Places participants into the 3x3 matrix:
- direct placement in the lowest free slot under the sponsor
- otherwise breadth-first spillover inside the sponsor's 3-level window
- race safety through the active-slot unique index, with bounded retries
"""

from collections import deque
from dataclasses import dataclass

from loguru import logger
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import (
    MATRIX_DEPTH,
    MATRIX_WIDTH,
    ROOT_LEVEL,
)
from mlm_matrix.config.settings import settings
from mlm_matrix.models.enums import PlacementType
from mlm_matrix.models.matrix_position import MatrixPosition
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository
from mlm_matrix.utils.datetime_utils import Clock, utc_now
from mlm_matrix.utils.db_decorators import with_auto_commit, with_rollback_on_error
from mlm_matrix.utils.exceptions import (
    InvalidSponsorError,
    MatrixIntegrityError,
    NoCapacityWithinWindowError,
    ParticipantInactiveError,
    ParticipantNotFoundError,
    PlacementConflictError,
    SponsorInactiveError,
)


@dataclass
class PlacementResult:
    """Result of a placement request."""

    position: MatrixPosition
    created: bool  # False: the user was already placed
    attempts: int = 0

    @property
    def placement_type(self) -> str:
        return self.position.placement_type

    @property
    def is_spillover(self) -> bool:
        return self.position.is_spillover


@dataclass(frozen=True)
class SlotChoice:
    """Where the next recruit of a sponsor lands."""

    parent_user_id: int
    level: int  # absolute level of the new position
    position: int  # slot 1-3 under the parent
    placement_type: str
    spillover_from_id: int | None = None


def lowest_free_slot(occupied: set[int]) -> int | None:
    """Lowest slot number in 1..MATRIX_WIDTH not in occupied."""
    for slot in range(1, MATRIX_WIDTH + 1):
        if slot not in occupied:
            return slot
    return None


class MatrixPlacementEngine:
    """
    Allocates matrix positions.

    The engine owns its transaction: each successful placement is committed
    before returning, failures are rolled back.
    """

    def __init__(
        self,
        session: AsyncSession,
        position_repo: MatrixPositionRepository | None = None,
        user_repo: UserRepository | None = None,
        clock: Clock = utc_now,
        max_attempts: int | None = None,
    ) -> None:
        """
        Initialize placement engine.

        Args:
            session: Async database session
            position_repo: Position store (defaults to a repository on session)
            user_repo: User store (defaults to a repository on session)
            clock: Timestamp source for placed_at / deactivated_at
            max_attempts: Slot race retries (defaults to settings)
        """
        self.session = session
        self.position_repo = position_repo or MatrixPositionRepository(session)
        self.user_repo = user_repo or UserRepository(session)
        self.clock = clock
        self.max_attempts = max_attempts or settings.placement_max_attempts

    @with_rollback_on_error
    async def find_or_create_position(
        self, sponsor_id: int, new_user_id: int
    ) -> PlacementResult:
        """
        Place a user under a sponsor, or return the existing placement.

        Args:
            sponsor_id: Sponsor user ID (must be placed and active)
            new_user_id: User to place

        Returns:
            PlacementResult (created=False if the user was already placed)

        Raises:
            ParticipantNotFoundError: new user does not exist
            ParticipantInactiveError: new user or its former position is
                deactivated
            InvalidSponsorError: sponsor missing, unplaced, self or a descendant
            SponsorInactiveError: sponsor or its position is deactivated
            NoCapacityWithinWindowError: sponsor's 3-level window is full
            PlacementConflictError: slot race lost on every attempt
        """
        existing = await self.position_repo.get_active_for_user(new_user_id)
        if existing:
            logger.debug(
                "User already placed",
                extra={"user_id": new_user_id, "position_id": existing.id},
            )
            return PlacementResult(position=existing, created=False)

        new_user = await self.user_repo.get_by_id(new_user_id)
        if new_user is None:
            raise ParticipantNotFoundError(new_user_id)
        if not new_user.is_active:
            raise ParticipantInactiveError(new_user_id)
        if await self.position_repo.get_current_for_user(new_user_id):
            # Removed from the network, positions are never re-created
            raise ParticipantInactiveError(new_user_id)

        if sponsor_id == new_user_id:
            raise InvalidSponsorError(sponsor_id, "self-sponsorship")

        sponsor_position = await self._get_sponsor_position(sponsor_id)
        await self._check_not_ancestor(new_user_id, sponsor_position)

        for attempt in range(1, self.max_attempts + 1):
            choice = await self._select_slot(sponsor_position)

            try:
                async with self.session.begin_nested():
                    position = await self.position_repo.create(
                        user_id=new_user_id,
                        sponsor_id=choice.parent_user_id,
                        level=choice.level,
                        position=choice.position,
                        placement_type=choice.placement_type,
                        spillover_from_id=choice.spillover_from_id,
                        is_active=True,
                        placed_at=self.clock(),
                    )
            except IntegrityError:
                # Either the user was placed concurrently or the slot was taken
                existing = await self.position_repo.get_active_for_user(
                    new_user_id
                )
                if existing:
                    await self.session.commit()
                    return PlacementResult(
                        position=existing, created=False, attempts=attempt
                    )

                logger.warning(
                    f"Slot conflict placing user {new_user_id}, "
                    f"attempt {attempt}/{self.max_attempts}",
                    extra={
                        "user_id": new_user_id,
                        "sponsor_id": sponsor_id,
                        "parent_user_id": choice.parent_user_id,
                        "slot": choice.position,
                    },
                )
                continue

            await self.session.commit()

            logger.info(
                f"Placed user {new_user_id} under {choice.parent_user_id} "
                f"({choice.placement_type})",
                extra={
                    "user_id": new_user_id,
                    "sponsor_id": sponsor_id,
                    "parent_user_id": choice.parent_user_id,
                    "level": choice.level,
                    "slot": choice.position,
                    "placement_type": choice.placement_type,
                },
            )
            return PlacementResult(
                position=position, created=True, attempts=attempt
            )

        raise PlacementConflictError(new_user_id, self.max_attempts)

    @with_rollback_on_error
    async def create_root_position(self, user_id: int) -> PlacementResult:
        """
        Place a user at the top of a new network (no sponsor, level 0).

        Args:
            user_id: User to place

        Returns:
            PlacementResult (created=False if the user was already placed)
        """
        existing = await self.position_repo.get_active_for_user(user_id)
        if existing:
            return PlacementResult(position=existing, created=False)

        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise ParticipantNotFoundError(user_id)
        if not user.is_active:
            raise ParticipantInactiveError(user_id)
        if await self.position_repo.get_current_for_user(user_id):
            raise ParticipantInactiveError(user_id)

        try:
            async with self.session.begin_nested():
                position = await self.position_repo.create(
                    user_id=user_id,
                    sponsor_id=None,
                    level=ROOT_LEVEL,
                    position=1,
                    placement_type=PlacementType.ROOT.value,
                    spillover_from_id=None,
                    is_active=True,
                    placed_at=self.clock(),
                )
        except IntegrityError:
            existing = await self.position_repo.get_active_for_user(user_id)
            if existing is None:
                raise PlacementConflictError(user_id, 1)
            await self.session.commit()
            return PlacementResult(position=existing, created=False, attempts=1)

        await self.session.commit()
        logger.info(
            f"Created root position for user {user_id}",
            extra={"user_id": user_id, "position_id": position.id},
        )
        return PlacementResult(position=position, created=True, attempts=1)

    async def find_next_available_slot(self, sponsor_id: int) -> SlotChoice | None:
        """
        Preview where the sponsor's next recruit would land. Read only.

        Args:
            sponsor_id: Sponsor user ID

        Returns:
            SlotChoice, or None if the sponsor's window is full
        """
        sponsor_position = await self._get_sponsor_position(sponsor_id)
        try:
            return await self._select_slot(sponsor_position)
        except NoCapacityWithinWindowError:
            return None

    @with_auto_commit
    async def deactivate_position(self, user_id: int) -> MatrixPosition | None:
        """
        Soft-disable the user's active position.

        The slot becomes free for new placements. Children keep pointing at
        the user, so upline walks still climb through it.

        Args:
            user_id: User ID

        Returns:
            Deactivated position, or None if the user had no active position
        """
        if await self.user_repo.get_by_id(user_id) is None:
            raise ParticipantNotFoundError(user_id)

        position = await self.position_repo.get_active_for_user(user_id)
        if position is None:
            logger.debug(
                "No active position to deactivate",
                extra={"user_id": user_id},
            )
            return None

        await self.position_repo.deactivate(position, self.clock())
        logger.info(
            f"Deactivated matrix position of user {user_id}",
            extra={"user_id": user_id, "position_id": position.id},
        )
        return position

    async def _get_sponsor_position(self, sponsor_id: int) -> MatrixPosition:
        """Validate the sponsor and return its active position."""
        sponsor = await self.user_repo.get_by_id(sponsor_id)
        if sponsor is None:
            raise InvalidSponsorError(sponsor_id, "sponsor does not exist")
        if not sponsor.is_active:
            raise SponsorInactiveError(sponsor_id)

        position = await self.position_repo.get_active_for_user(sponsor_id)
        if position is None:
            if await self.position_repo.get_current_for_user(sponsor_id):
                # Placed before, deactivated since
                raise SponsorInactiveError(sponsor_id)
            raise InvalidSponsorError(sponsor_id, "sponsor is not placed in the matrix")
        return position

    async def _check_not_ancestor(
        self, new_user_id: int, sponsor_position: MatrixPosition
    ) -> None:
        """Reject placements under one of the new user's own descendants."""
        visited = {sponsor_position.user_id}
        current = sponsor_position

        while current.sponsor_id is not None:
            if current.sponsor_id == new_user_id:
                raise InvalidSponsorError(
                    sponsor_position.user_id, "placement would create a cycle"
                )
            if current.sponsor_id in visited:
                raise MatrixIntegrityError(
                    f"Sponsor chain of user {sponsor_position.user_id} "
                    f"loops at user {current.sponsor_id}"
                )
            visited.add(current.sponsor_id)

            parent = await self.position_repo.get_current_for_user(
                current.sponsor_id
            )
            if parent is None:
                break
            current = parent

    async def _select_slot(self, sponsor_position: MatrixPosition) -> SlotChoice:
        """Pick a direct slot, else the first spillover slot in BFS order."""
        child_level = sponsor_position.level + 1
        occupied = await self.position_repo.get_occupied_slots(
            sponsor_position.user_id, child_level
        )
        slot = lowest_free_slot(occupied)
        if slot is not None:
            return SlotChoice(
                parent_user_id=sponsor_position.user_id,
                level=child_level,
                position=slot,
                placement_type=PlacementType.DIRECT.value,
            )

        parent, parent_occupied = await self._find_spillover_parent(
            sponsor_position
        )
        return SlotChoice(
            parent_user_id=parent.user_id,
            level=parent.level + 1,
            position=lowest_free_slot(parent_occupied),
            placement_type=PlacementType.SPILLOVER.value,
            spillover_from_id=sponsor_position.user_id,
        )

    async def _find_spillover_parent(
        self, sponsor_position: MatrixPosition
    ) -> tuple[MatrixPosition, set[int]]:
        """
        Breadth-first search of the sponsor's window for a position with room.

        Level order, slot order within a level. Only positions up to depth
        MATRIX_DEPTH - 1 below the sponsor are candidates, so the new node
        never lands deeper than MATRIX_DEPTH.

        Returns:
            The first position with a free slot and its occupied slot numbers
        """
        children = await self.position_repo.get_active_children(
            sponsor_position.user_id, sponsor_position.level + 1
        )
        queue: deque[tuple[MatrixPosition, int]] = deque(
            (child, 1) for child in children
        )
        visited = {sponsor_position.user_id}

        while queue:
            node, depth = queue.popleft()
            if node.user_id in visited:
                raise MatrixIntegrityError(
                    f"User {node.user_id} reached twice below sponsor "
                    f"{sponsor_position.user_id}"
                )
            visited.add(node.user_id)

            node_children = await self.position_repo.get_active_children(
                node.user_id, node.level + 1
            )
            if len(node_children) < MATRIX_WIDTH:
                return node, {child.position for child in node_children}

            if depth + 1 < MATRIX_DEPTH:
                queue.extend((child, depth + 1) for child in node_children)

        raise NoCapacityWithinWindowError(sponsor_position.user_id, MATRIX_DEPTH)
