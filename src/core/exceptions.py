"""Custom exceptions raised across layers. Every exception of this project derives from GameError."""


class GameError(Exception):
    """Base class for all errors of the match server."""


# --- Domain errors ---
class GameStateError(GameError):
    """The match (or its serialized form) is in a state that does not allow the requested action."""


class IllegalMoveError(GameError):
    """Cell index out of range or cell already occupied."""


class NotYourTurnError(GameError):
    """Move sent by an identity without a seat, or by the seat that is not to move."""


class MatchFullError(GameError):
    """Both seats are taken."""


class MatchEndedError(GameError):
    """The game is over (or the match was terminated). No new players are admitted."""


# --- Boundary errors ---
class InvalidRequestError(GameError):
    """Request payload could not be interpreted."""


class RepositoryError(GameError):
    """Record could not be found in the repository."""


class StorageError(GameError):
    """Read or write on the persistence layer failed."""


class ConcurrentWriteError(StorageError):
    """Optimistic write rejected: the stored record changed since it was read."""
