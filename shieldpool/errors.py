"""
shieldpool errors.

Typed exception hierarchy with structured metadata, suitable for the CLI or
any host that embeds the pool.

Usage:

    from shieldpool.errors import UnknownRoot

    raise UnknownRoot("root is not in the recent history", data={"root": root})

All errors expose:
- .code    : stable machine-readable code (snake_case)
- .message : human-readable summary
- .data    : optional structured payload (dict-like)
- .to_dict(): JSON-friendly rendering

Every error raised by a pool operation is raised before that operation's
staged writes are committed, so a caller that sees an exception can assume
the store is unchanged.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional


class PoolError(Exception):
    """
    Base class for pool errors.

    Subclasses set `default_code`. `security_relevant` marks rejections a host
    should surface to monitoring (replay attempts and the like).
    """

    default_code = "pool_error"
    security_relevant = False

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.data: Dict[str, Any] = dict(data) if data else {}

    def __str__(self) -> str:  # pragma: no cover - trivial
        if self.message:
            return f"{self.code}: {self.message}"
        return self.code

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "message": self.message or None,
            "data": self.data or None,
        }

    @classmethod
    def from_exc(cls, exc: BaseException, *, code: Optional[str] = None) -> "PoolError":
        """Wrap an arbitrary exception with a best-effort message."""
        err = cls(f"{exc.__class__.__name__}: {exc}", code=code)
        err.__cause__ = exc
        return err


class ConfigError(PoolError):
    """Invalid configuration value (environment or explicit)."""

    default_code = "config_error"


class ConstructionError(PoolError):
    """Bad accumulator parameters at initialisation (depth outside [1, 31])."""

    default_code = "construction_error"


class PoolStateError(PoolError):
    """
    Persisted pool state is missing, already initialised, or inconsistent.

    Raised for internal consistency guards rather than attacker-facing input.
    """

    default_code = "pool_state_error"


class TreeFull(PoolError):
    """The accumulator holds 2**depth leaves; nothing more can be inserted."""

    default_code = "tree_full"


class WrongAmount(PoolError):
    """Attached payment does not match the pool denomination exactly."""

    default_code = "wrong_amount"


class InvalidAddress(PoolError):
    """Recipient or relayer is not a well-formed address."""

    default_code = "invalid_address"


class MalformedSignal(PoolError):
    """A withdrawal parameter cannot be parsed into a field element."""

    default_code = "malformed_signal"


class DuplicateNullifier(PoolError):
    """The nullifier hash was already spent."""

    default_code = "duplicate_nullifier"
    security_relevant = True


class UnknownRoot(PoolError):
    """The root is zero, stale (older than the history window) or was never produced."""

    default_code = "unknown_root"


class InvalidProof(PoolError):
    """The proof verifier rejected the proof against the public signals."""

    default_code = "invalid_proof"


class FeeExceedsPrincipal(PoolError):
    """The relayer fee is larger than the pool denomination."""

    default_code = "fee_exceeds_principal"


__all__ = [
    "PoolError",
    "ConfigError",
    "ConstructionError",
    "PoolStateError",
    "TreeFull",
    "WrongAmount",
    "InvalidAddress",
    "MalformedSignal",
    "DuplicateNullifier",
    "UnknownRoot",
    "InvalidProof",
    "FeeExceedsPrincipal",
]
