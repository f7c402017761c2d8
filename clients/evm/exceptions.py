"""
Error taxonomy for token reads and transfer building.

Every error carries a human-readable message and an optional numeric code.
The code is diagnostic only; callers branch on the exception type.
"""

__all__ = [
    "TokenError",
    "InvalidAddress",
    "InvalidAmount",
    "InsufficientBalance",
    "PrecisionOverflow",
    "MalformedHex",
    "MetadataUnavailable",
    "TransportError",
]


class TokenError(Exception):
    """Base class for every error raised by the token clients and codec."""

    default_code: int | None = None

    def __init__(self, message: str, code: int | None = None):
        super().__init__(message)
        self.message = message
        self.code = code if code is not None else self.default_code


class InvalidAddress(TokenError):
    """Raised before any external call when an address is malformed."""

    default_code = 23000

    def __init__(self, address: str, message: str = "Invalid address"):
        super().__init__(f"{message}: {address!r}")
        self.address = address


class InvalidAmount(TokenError):
    """Raised when an amount, decimals count or integer is outside the codec domain."""
    pass


class InsufficientBalance(TokenError):
    """Raised when the sender holds less than the requested transfer amount."""

    default_code = 10000

    def __init__(self, balance, amount):
        super().__init__(f"Insufficient balance: balance={balance} < amount={amount}")
        self.balance = balance
        self.amount = amount


class PrecisionOverflow(TokenError):
    """Raised when an amount has more fractional digits than the token decimals."""

    def __init__(self, amount, fraction_digits: int, decimals: int):
        super().__init__(
            f"Fraction exceeds precision: {amount} has {fraction_digits} "
            f"fractional digits, token allows {decimals}"
        )
        self.amount = amount
        self.fraction_digits = fraction_digits
        self.decimals = decimals


class MalformedHex(TokenError):
    """Raised when a hex quantity is not a 0x-prefixed run of hex digits."""

    def __init__(self, value):
        super().__init__(f"Malformed hex quantity: {value!r}")
        self.value = value


class MetadataUnavailable(TokenError):
    """Raised when a read-only call returns a result of unexpected shape."""

    def __init__(self, method: str, result=None, code: int | None = None):
        super().__init__(
            f"There was a problem retrieving {method}: unexpected result {result!r}",
            code,
        )
        self.method = method
        self.result = result


class TransportError(TokenError):
    """Opaque failure of the node or transport, carrying the underlying message and code."""

    @classmethod
    def from_exception(cls, exc: BaseException) -> "TransportError":
        message = str(exc) or exc.__class__.__name__
        code = getattr(exc, "code", None)

        # RPC errors keep the JSON-RPC error object in args or rpc_response.
        payload = getattr(exc, "rpc_response", None)
        if payload is None and exc.args and isinstance(exc.args[0], dict):
            payload = exc.args[0]
        if isinstance(payload, dict):
            error = payload.get("error", payload)
            if isinstance(error, dict):
                message = error.get("message", message)
                code = error.get("code", code)

        if not isinstance(code, int) or isinstance(code, bool):
            code = None

        return cls(message, code)
