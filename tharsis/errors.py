"""
Errors - Exception hierarchy shared by every layer.

Three families:
- InputError: a response was rejected. The pending input is unchanged
  and the caller may resubmit a corrected response.
- NotFoundError: an unknown game, save version or participant.
- PersistenceError: the store failed or returned something unreadable.

StoreInitializationError is the only fatal one: it aborts startup.
"""

from __future__ import annotations


class TharsisError(Exception):
    """Base class for all engine errors."""
    error_code = "INTERNAL_ERROR"


# =============================================================================
# Validation
# =============================================================================

class InputError(TharsisError):
    """A response to a pending input was rejected."""
    error_code = "INVALID_INPUT"


class InvalidIndexError(InputError):
    """The response addressed an option that does not exist."""
    error_code = "INVALID_INDEX"

    def __init__(self, index: int, title: str, count: int):
        self.index = index
        self.title = title
        self.count = count
        super().__init__(f"Invalid index {index} for '{title}' ({count} options)")


class WrongResponseError(InputError):
    """The response kind does not match the kind of the addressed input."""
    error_code = "WRONG_RESPONSE"

    def __init__(self, expected: str, received: str):
        self.expected = expected
        self.received = received
        super().__init__(f"Not a valid {expected} response (got {received})")


class AmountOutOfRangeError(InputError):
    error_code = "AMOUNT_OUT_OF_RANGE"

    def __init__(self, amount: int, min_amount: int, max_amount: int):
        self.amount = amount
        self.min_amount = min_amount
        self.max_amount = max_amount
        super().__init__(
            f"Amount {amount} is outside [{min_amount}, {max_amount}]"
        )


class InvalidPayloadError(InputError):
    """A custom payload is missing required fields."""
    error_code = "INVALID_PAYLOAD"


class OutOfOrderError(InputError):
    """An And option was answered before the options preceding it."""
    error_code = "OUT_OF_ORDER"

    def __init__(self, index: int, expected: int, title: str):
        self.index = index
        self.expected = expected
        super().__init__(
            f"Option {index} of '{title}' answered out of order (expected {expected})"
        )


class StaleInputError(InputError):
    """The response targets an input that is no longer pending."""
    error_code = "STALE_INPUT"


class NotYourTurnError(InputError):
    error_code = "NOT_YOUR_TURN"


class MalformedResponseError(InputError):
    """The wire payload is not a well-formed response."""
    error_code = "MALFORMED_RESPONSE"


class GameStateError(TharsisError):
    """The game cannot accept this operation in its current state."""
    error_code = "INVALID_STATE"


class ActionError(GameStateError):
    """An action failed while being applied. The game is rolled back."""
    error_code = "ACTION_FAILED"


# =============================================================================
# Lookup
# =============================================================================

class NotFoundError(TharsisError):
    error_code = "NOT_FOUND"


class GameNotFoundError(NotFoundError):
    error_code = "GAME_NOT_FOUND"

    def __init__(self, game_id: str):
        self.game_id = game_id
        super().__init__(f"Game {game_id} not found")


class SnapshotNotFoundError(NotFoundError):
    error_code = "SAVE_NOT_FOUND"

    def __init__(self, game_id: str, save_id: int):
        self.game_id = game_id
        self.save_id = save_id
        super().__init__(f"Game {game_id} not found at save_id {save_id}")


class ParticipantNotFoundError(NotFoundError):
    error_code = "PARTICIPANT_NOT_FOUND"


# =============================================================================
# Persistence
# =============================================================================

class PersistenceError(TharsisError):
    error_code = "PERSISTENCE_ERROR"


class StoreInitializationError(PersistenceError):
    """The store could not be opened. Fatal at startup."""
    error_code = "STORE_UNAVAILABLE"
