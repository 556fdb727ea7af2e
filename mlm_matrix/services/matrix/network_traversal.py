"""
Network traversal.

Level-by-level reads of the matrix below a user (views, downline counts,
volume, depth) and the bounded upline walk above a position. Every walk is
iterative and bounded; repeated user IDs raise MatrixIntegrityError.
"""

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any

from loguru import logger
from sqlalchemy.ext.asyncio import AsyncSession

from mlm_matrix.config.business_constants import MATRIX_DEPTH, MATRIX_WIDTH
from mlm_matrix.config.settings import settings
from mlm_matrix.models.enums import PlacementType
from mlm_matrix.models.matrix_position import MatrixPosition
from mlm_matrix.repositories.investment_repository import InvestmentRepository
from mlm_matrix.repositories.matrix_position_repository import (
    MatrixPositionRepository,
)
from mlm_matrix.repositories.user_repository import UserRepository
from mlm_matrix.utils.db_decorators import with_auto_commit
from mlm_matrix.utils.exceptions import (
    MatrixIntegrityError,
    ParticipantNotFoundError,
)


@dataclass
class MatrixNode:
    """A participant in a matrix view. Level is relative to the view root."""

    user_id: int
    username: str | None
    level: int
    position: int | None = None
    placement_type: str | None = None
    children: list["MatrixNode"] = field(default_factory=list)

    @property
    def is_spillover(self) -> bool:
        return self.placement_type == PlacementType.SPILLOVER.value

    def to_dict(self) -> dict[str, Any]:
        """Serialize the subtree for visualization."""
        return {
            "user_id": self.user_id,
            "username": self.username,
            "level": self.level,
            "position": self.position,
            "placement_type": self.placement_type,
            "is_spillover": self.is_spillover,
            "children_count": len(self.children),
            "available_slots": MATRIX_WIDTH - len(self.children),
            "children": [child.to_dict() for child in self.children],
        }


@dataclass
class MatrixTree:
    """Matrix view rooted at one user, bounded by max_level."""

    root: MatrixNode
    max_level: int
    has_position: bool
    level_counts: dict[int, int]

    @property
    def total_positions(self) -> int:
        return sum(self.level_counts.values())

    @property
    def capacity(self) -> int:
        return NetworkTraversal.get_matrix_capacity(self.max_level)

    @property
    def available_positions(self) -> int:
        return self.capacity - self.total_positions

    def nodes_at_level(self, level: int) -> list[MatrixNode]:
        """Nodes at a relative level, in slot order under each parent."""
        nodes = [self.root]
        for _ in range(level):
            nodes = [child for node in nodes for child in node.children]
        return nodes

    def to_dict(self) -> dict[str, Any]:
        """Visualization / genealogy payload."""
        return {
            "root": self.root.to_dict(),
            "has_position": self.has_position,
            "max_level": self.max_level,
            "level_counts": dict(self.level_counts),
            "total_positions": self.total_positions,
            "capacity": self.capacity,
            "available_positions": self.available_positions,
        }


@dataclass(frozen=True)
class UplineMember:
    """Sponsor found on an upline walk."""

    level: int  # hops above the start position
    user_id: int
    position: MatrixPosition | None  # sponsor's current position


class NetworkTraversal:
    """Bounded reads over the matrix adjacency."""

    def __init__(
        self,
        session: AsyncSession,
        position_repo: MatrixPositionRepository | None = None,
        user_repo: UserRepository | None = None,
        investment_repo: InvestmentRepository | None = None,
    ) -> None:
        """
        Initialize network traversal.

        Args:
            session: Async database session
            position_repo: Position store
            user_repo: User store
            investment_repo: Investment store (volume queries)
        """
        self.session = session
        self.position_repo = position_repo or MatrixPositionRepository(session)
        self.user_repo = user_repo or UserRepository(session)
        self.investment_repo = investment_repo or InvestmentRepository(session)

    @staticmethod
    def get_matrix_capacity(max_level: int = MATRIX_DEPTH) -> int:
        """
        Number of slots in a window of max_level levels.

        Args:
            max_level: Levels below the root

        Returns:
            sum(3^i for i in 1..max_level), 39 for three levels
        """
        return sum(MATRIX_WIDTH ** level for level in range(1, max_level + 1))

    async def build_matrix_view(
        self, root_user_id: int, max_level: int | None = None
    ) -> MatrixTree:
        """
        Build the matrix below a user, one level per query.

        Args:
            root_user_id: View root
            max_level: Levels to load (defaults to settings.matrix_view_depth)

        Returns:
            MatrixTree; an unplaced user gets a tree with no children
        """
        if max_level is None:
            max_level = settings.matrix_view_depth
        self._check_max_level(max_level)

        user = await self.user_repo.get_by_id(root_user_id)
        if user is None:
            raise ParticipantNotFoundError(root_user_id)

        position = await self.position_repo.get_active_for_user(root_user_id)
        root = MatrixNode(
            user_id=user.id,
            username=user.username,
            level=0,
            position=position.position if position else None,
            placement_type=position.placement_type if position else None,
        )
        level_counts = {level: 0 for level in range(1, max_level + 1)}

        if position is None:
            return MatrixTree(
                root=root,
                max_level=max_level,
                has_position=False,
                level_counts=level_counts,
            )

        frontier: dict[int, MatrixNode] = {root.user_id: root}
        seen = {root.user_id}

        for relative_level in range(1, max_level + 1):
            positions = await self.position_repo.get_active_below(
                list(frontier), position.level + relative_level
            )
            if not positions:
                break

            users = await self.user_repo.get_by_ids(
                [p.user_id for p in positions]
            )
            next_frontier: dict[int, MatrixNode] = {}
            for child in positions:
                self._mark_seen(seen, child.user_id, root_user_id)
                node = MatrixNode(
                    user_id=child.user_id,
                    username=users[child.user_id].username
                    if child.user_id in users else None,
                    level=relative_level,
                    position=child.position,
                    placement_type=child.placement_type,
                )
                frontier[child.sponsor_id].children.append(node)
                next_frontier[child.user_id] = node

            level_counts[relative_level] = len(positions)
            frontier = next_frontier

        return MatrixTree(
            root=root,
            max_level=max_level,
            has_position=True,
            level_counts=level_counts,
        )

    async def calculate_downline_counts(
        self, user_id: int, max_level: int = MATRIX_DEPTH
    ) -> dict[int, int]:
        """
        Count active positions per level below a user.

        Args:
            user_id: Root user
            max_level: Levels to count

        Returns:
            Dict mapping relative level to count {1: n1, 2: n2, 3: n3}
        """
        levels = await self._collect_downline(user_id, max_level)
        return {level: len(ids) for level, ids in levels.items()}

    async def calculate_available_positions(
        self, user_id: int, max_level: int = MATRIX_DEPTH
    ) -> int:
        """Free slots in the user's window."""
        counts = await self.calculate_downline_counts(user_id, max_level)
        return self.get_matrix_capacity(max_level) - sum(counts.values())

    async def calculate_downline_volume(
        self,
        user_id: int,
        max_level: int = MATRIX_DEPTH,
        statuses: frozenset[str] | None = None,
    ) -> Decimal:
        """
        Sum eligible investments of the downline window (root excluded).

        Args:
            user_id: Root user
            max_level: Levels to include
            statuses: Investment statuses (defaults to eligible statuses)

        Returns:
            Total volume
        """
        statuses = statuses or settings.get_eligible_statuses()
        levels = await self._collect_downline(user_id, max_level)
        downline_ids = [uid for ids in levels.values() for uid in ids]
        return await self.investment_repo.sum_eligible_amount(
            downline_ids, statuses
        )

    async def get_matrix_depth(
        self, user_id: int, limit: int = MATRIX_DEPTH
    ) -> int:
        """
        Deepest level below the user that holds an active position.

        Args:
            user_id: Root user
            limit: Maximum depth explored

        Returns:
            Depth in 0..limit (0 for an empty or unplaced matrix)
        """
        if limit < 1:
            raise ValueError(f"limit must be positive, got {limit}")

        levels = await self._collect_downline(user_id, limit)
        filled = [level for level, ids in levels.items() if ids]
        return max(filled, default=0)

    async def get_upline(
        self, position: MatrixPosition, max_hops: int = MATRIX_DEPTH
    ) -> list[UplineMember]:
        """
        Walk sponsor pointers above a position.

        Deactivated sponsor positions are climbed through; the walk ends at a
        network root, an unplaced sponsor, or after max_hops.

        Args:
            position: Start position
            max_hops: Maximum sponsors returned

        Returns:
            Sponsors ordered nearest first (level 1 = direct sponsor)
        """
        upline: list[UplineMember] = []
        visited = {position.user_id}
        current: MatrixPosition | None = position

        for hop in range(1, max_hops + 1):
            if current is None or current.sponsor_id is None:
                break

            sponsor_id = current.sponsor_id
            if sponsor_id in visited:
                raise MatrixIntegrityError(
                    f"Sponsor chain above user {position.user_id} "
                    f"loops at user {sponsor_id}"
                )
            visited.add(sponsor_id)

            sponsor_position = await self.position_repo.get_current_for_user(
                sponsor_id
            )
            if sponsor_position is None:
                logger.warning(
                    f"Sponsor {sponsor_id} has no matrix position",
                    extra={"user_id": current.user_id, "sponsor_id": sponsor_id},
                )
            upline.append(
                UplineMember(
                    level=hop, user_id=sponsor_id, position=sponsor_position
                )
            )
            current = sponsor_position

        return upline

    async def get_spillover_beneficiaries(self, user_id: int) -> list[int]:
        """
        Upline members who benefit from a placement (up to three).

        Args:
            user_id: Placed user

        Returns:
            User IDs, direct placement sponsor first
        """
        position = await self.position_repo.get_current_for_user(user_id)
        if position is None:
            return []
        upline = await self.get_upline(position)
        return [member.user_id for member in upline]

    @with_auto_commit
    async def refresh_network_caches(self, user_id: int) -> tuple[int, Decimal]:
        """
        Recompute the user's downline_count and downline_volume caches.

        Args:
            user_id: User ID

        Returns:
            (downline_count, downline_volume)
        """
        counts = await self.calculate_downline_counts(user_id)
        volume = await self.calculate_downline_volume(user_id)
        downline_count = sum(counts.values())

        await self.user_repo.update(
            user_id,
            downline_count=downline_count,
            downline_volume=volume,
        )
        logger.debug(
            "Network caches refreshed",
            extra={
                "user_id": user_id,
                "downline_count": downline_count,
                "downline_volume": str(volume),
            },
        )
        return downline_count, volume

    async def _collect_downline(
        self,
        user_id: int,
        max_level: int,
    ) -> dict[int, list[int]]:
        """User IDs per relative level below the user's active position."""
        if await self.user_repo.get_by_id(user_id) is None:
            raise ParticipantNotFoundError(user_id)

        levels: dict[int, list[int]] = {
            level: [] for level in range(1, max_level + 1)
        }
        position = await self.position_repo.get_active_for_user(user_id)
        if position is None:
            return levels

        seen = {user_id}
        frontier = [user_id]
        for relative_level in range(1, max_level + 1):
            if not frontier:
                break
            user_ids = await self.position_repo.get_active_user_ids_below(
                frontier, position.level + relative_level
            )
            for child_id in user_ids:
                self._mark_seen(seen, child_id, user_id)
            levels[relative_level] = user_ids
            frontier = user_ids

        return levels

    @staticmethod
    def _mark_seen(seen: set[int], user_id: int, root_user_id: int) -> None:
        if user_id in seen:
            raise MatrixIntegrityError(
                f"User {user_id} appears twice below user {root_user_id}"
            )
        seen.add(user_id)

    @staticmethod
    def _check_max_level(max_level: int) -> None:
        if max_level < 1 or max_level > MATRIX_DEPTH:
            raise ValueError(
                f"max_level must be between 1 and {MATRIX_DEPTH}, got {max_level}"
            )
