"""Error kinds raised by the bot core.

None of these are fatal: each one is the outcome of a single operation and
the handlers turn it into a reply.
"""


class RewardBotError(Exception):
    """Base class for every per-operation failure."""


class NotFound(RewardBotError):
    pass


class AlreadyProcessed(RewardBotError):
    pass


class AlreadyClaimed(RewardBotError):
    pass


class InsufficientBalance(RewardBotError):
    def __init__(self, available: int, required: int):
        super().__init__(f"available {available} < required {required}")
        self.available = available
        self.required = required


class InvalidToken(RewardBotError):
    pass


class DeviceCollision(RewardBotError):
    def __init__(self, user_id: int, owner_id: int):
        super().__init__(f"device of user {user_id} already linked to {owner_id}")
        self.user_id = user_id
        self.owner_id = owner_id


class RailError(RewardBotError):
    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class Unauthorized(RewardBotError):
    pass


class WalletMissing(RewardBotError):
    pass
