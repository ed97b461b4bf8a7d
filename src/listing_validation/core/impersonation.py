"""Scoped authority for acting as an external address.

Acting "as" a whale or a governance executor is an explicit, non-reentrant
scope: exactly one identity may be active per client, and impersonation is
always stopped when the scope exits, whether the wrapped operation succeeded
or not. The ``ActingAs`` token yielded by the scope is what state-changing
client calls accept; it is useless once its scope has exited.
"""

from __future__ import annotations

from types import TracebackType
from typing import Protocol
from weakref import WeakKeyDictionary


class ImpersonationError(Exception):
    """Raised on nested scopes or use of an expired authority token."""

    pass


class SupportsImpersonation(Protocol):
    def start_impersonating(self, address: str) -> None: ...

    def stop_impersonating(self, address: str) -> None: ...


# client -> address currently impersonated on it
_ACTIVE_IDENTITIES: WeakKeyDictionary[SupportsImpersonation, str] = WeakKeyDictionary()


class ActingAs:
    """Authority token proving an impersonation scope is active."""

    def __init__(self, address: str) -> None:
        self.address = address.lower()
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def require_active(self, operation: str) -> None:
        """Raise if the scope that issued this token has exited."""
        if not self._active:
            raise ImpersonationError(
                f"Cannot {operation} as {self.address}: impersonation scope has exited"
            )

    def _expire(self) -> None:
        self._active = False

    def __repr__(self) -> str:
        state = "active" if self._active else "expired"
        return f"ActingAs({self.address}, {state})"


class ImpersonationScope:
    """Context manager acquiring the right to act as ``address`` on ``client``.

    Usage:
        with ImpersonationScope(client, whale) as authority:
            client.deposit(authority, asset, amount, whale)
    """

    def __init__(self, client: SupportsImpersonation, address: str) -> None:
        self.client = client
        self.address = address.lower()
        self._authority: ActingAs | None = None

    def __enter__(self) -> ActingAs:
        current = _ACTIVE_IDENTITIES.get(self.client)
        if current is not None:
            raise ImpersonationError(
                f"Cannot act as {self.address}: already acting as {current}"
            )

        self.client.start_impersonating(self.address)
        _ACTIVE_IDENTITIES[self.client] = self.address
        self._authority = ActingAs(self.address)
        return self._authority

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._authority is not None:
            self._authority._expire()
            self._authority = None
        _ACTIVE_IDENTITIES.pop(self.client, None)
        self.client.stop_impersonating(self.address)


def active_identity(client: SupportsImpersonation) -> str | None:
    """Address currently impersonated on ``client``, if any."""
    return _ACTIVE_IDENTITIES.get(client)
