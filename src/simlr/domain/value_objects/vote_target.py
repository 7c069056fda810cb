"""Vote target value objects.

Votes reference their entity by (entity_type, entity_id) without a foreign key.
The type is a closed enum; each variant has its own existence lookup in
``VoteService`` so an unknown variant can't sneak in as a free-form string.
"""

from dataclasses import dataclass
from enum import Enum


class VoteEntityType(str, Enum):
    """Kinds of entities that can be voted on."""

    SIMLR_EDGE = "SIMLR_EDGE"
    POST = "POST"
    COMMENT = "COMMENT"


class VoteValue(int, Enum):
    """Direction of a single vote."""

    UP = 1
    DOWN = -1


@dataclass(frozen=True)
class VoteTarget:
    """The (entity_type, entity_id) pair a vote is attached to."""

    entity_type: VoteEntityType
    entity_id: str

    @classmethod
    def simlr_edge(cls, edge_id: str) -> "VoteTarget":
        return cls(VoteEntityType.SIMLR_EDGE, edge_id)

    @classmethod
    def post(cls, post_id: str) -> "VoteTarget":
        return cls(VoteEntityType.POST, post_id)

    @classmethod
    def comment(cls, comment_id: str) -> "VoteTarget":
        return cls(VoteEntityType.COMMENT, comment_id)
