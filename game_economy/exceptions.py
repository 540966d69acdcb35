"""
Custom exceptions for the Game Economy Service.

Every error carries a stable `code` so the HTTP layer can tell the client
exactly why a purchase or grant was refused.
"""


class EconomyError(Exception):
    """Base class for all economy errors."""
    code = "ECONOMY_ERROR"


# ── Categories ────────────────────────────────────────────────────────────────

class NotFoundError(EconomyError):
    code = "NOT_FOUND"


class InvalidStateError(EconomyError):
    code = "INVALID_STATE"


class InsufficientResourceError(EconomyError):
    code = "INSUFFICIENT_RESOURCE"


class EmptyInputError(EconomyError):
    code = "EMPTY_INPUT"


class PersistenceError(EconomyError):
    """The underlying store failed. Infrastructure fault, not a user error."""
    code = "PERSISTENCE_ERROR"


# ── Not found ─────────────────────────────────────────────────────────────────

class UserNotFoundError(NotFoundError):
    code = "USER_NOT_FOUND"

    def __init__(self, uid: int):
        self.uid = uid
        super().__init__(f"User not found: {uid}")


class ItemNotFoundError(NotFoundError):
    code = "ITEM_NOT_FOUND"

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Store item not found: {item_id}")


class WalletNotFoundError(NotFoundError):
    """Raised when a wallet record cannot be found for the given user + kind."""
    code = "WALLET_NOT_FOUND"

    def __init__(self, uid: int, kind: str):
        super().__init__(
            f"No {kind} wallet found for user={uid}. "
            "Ensure the user exists and has been initialized."
        )


class PackageNotFoundError(NotFoundError):
    code = "PACKAGE_NOT_FOUND"

    def __init__(self, package_id: int):
        self.package_id = package_id
        super().__init__(f"Reward package not found: {package_id}")


class RewardRecordNotFoundError(NotFoundError):
    code = "REWARD_RECORD_NOT_FOUND"

    def __init__(self, record_id: int):
        super().__init__(f"Reward record not found: {record_id}")


class LevelConfigNotFoundError(NotFoundError):
    code = "LEVEL_CONFIG_NOT_FOUND"

    def __init__(self, level: int):
        self.level = level
        super().__init__(f"No level config for level {level}")


class BackpackItemNotFoundError(NotFoundError):
    code = "BACKPACK_ITEM_NOT_FOUND"

    def __init__(self, uid: int, item_id: int):
        super().__init__(f"User {uid} does not own item {item_id}")


# ── Invalid state ─────────────────────────────────────────────────────────────

class ItemInactiveError(InvalidStateError):
    code = "ITEM_INACTIVE"

    def __init__(self, item_id: int):
        self.item_id = item_id
        super().__init__(f"Store item {item_id} is not on sale")


class WalletAlreadyInitializedError(InvalidStateError):
    code = "WALLET_ALREADY_INITIALIZED"

    def __init__(self, uid: int):
        super().__init__(f"Wallets for user {uid} already exist")


class DuplicateUserError(InvalidStateError):
    code = "DUPLICATE_USER"

    def __init__(self, field: str, value: str):
        super().__init__(f"A user with {field} '{value}' already exists")


class UnsupportedRewardKindError(InvalidStateError):
    """A package item whose type / target id combination has no known meaning."""
    code = "UNSUPPORTED_REWARD_KIND"

    def __init__(self, item_type: str, item_id: int):
        self.item_type = item_type
        self.item_id = item_id
        super().__init__(
            f"Unsupported reward item: type={item_type!r}, item_id={item_id}"
        )


class SelfTransferError(InvalidStateError):
    code = "SELF_TRANSFER"

    def __init__(self, uid: int):
        super().__init__(f"User {uid} cannot transfer items to themselves")


class UnsupportedCurrencyError(InvalidStateError):
    code = "UNSUPPORTED_CURRENCY"

    def __init__(self, kind: str):
        super().__init__(f"Unknown currency kind: {kind!r}")


class NegativeBalanceError(InvalidStateError):
    """Safety net: raised if a mutation would push a balance below zero."""
    code = "NEGATIVE_BALANCE"

    def __init__(self, uid: int, kind: str, resulting_balance: int):
        super().__init__(
            f"Rejected: {kind} wallet of user {uid} would have a negative balance "
            f"of {resulting_balance}. This is a data-integrity violation."
        )


# ── Insufficient resource ─────────────────────────────────────────────────────

class InsufficientStockError(InsufficientResourceError):
    code = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: int, stock: int, requested: int):
        self.stock = stock
        self.requested = requested
        super().__init__(
            f"Insufficient stock for item {item_id}: {stock} left, {requested} requested."
        )


class InsufficientFundsError(InsufficientResourceError):
    """Raised when a debit exceeds the wallet's available balance."""
    code = "INSUFFICIENT_FUNDS"

    def __init__(self, balance: int, requested: int, kind: str = "coin"):
        self.balance = balance
        self.requested = requested
        self.kind = kind
        super().__init__(
            f"Insufficient funds: wallet has {balance} {kind}, "
            f"but {requested} {kind} were requested."
        )


class InsufficientQuantityError(InsufficientResourceError):
    code = "INSUFFICIENT_QUANTITY"

    def __init__(self, item_id: int, owned: int, requested: int):
        self.owned = owned
        self.requested = requested
        super().__init__(
            f"Insufficient quantity of item {item_id}: owns {owned}, {requested} requested."
        )


# ── Empty input ───────────────────────────────────────────────────────────────

class EmptyPackageError(EmptyInputError):
    code = "EMPTY_PACKAGE"

    def __init__(self, package_id: int):
        super().__init__(f"Reward package {package_id} has no items")


class InvalidQuantityError(EmptyInputError):
    code = "INVALID_QUANTITY"

    def __init__(self, quantity: int):
        self.quantity = quantity
        super().__init__(f"Quantity must be positive, got {quantity}")
