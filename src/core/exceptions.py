"""
Custom exceptions shared by all layers.

NOTE: none of these derive from ValueError, so pydantic validators re-raise them as-is.
"""


class GameError(Exception):
    """Top-level exception for anything going wrong in this project."""


# --- DOMAIN ---
class GameStateError(GameError):
    """A transition was refused by the rules of the game."""


class InvalidPhaseError(GameStateError):
    """Operation is not allowed in the current phase (stale client or race). Refetch and retry."""


class InvalidTargetError(GameStateError):
    """Box does not exist or is no longer in play."""


class InvalidStateError(GameStateError):
    """The snapshot itself is inconsistent. Needs a re-sync or the match must be aborted."""


# --- SERVICE / BOUNDARY ---
class NotYourTurnError(GameError):
    """Player tried to act in a role they do not currently have."""


class InvalidRequestError(GameError):
    """Request data could not be interpreted."""


class RoomError(GameError):
    """Room lifecycle rule violated (full, already started, not the host...)."""


# --- PERSISTENCE ---
class RepositoryError(GameError):
    """Record not found (or otherwise unusable) in the repository."""


class ConcurrencyConflictError(RepositoryError):
    """Stored record changed since it was read. The losing writer may refetch and retry."""
