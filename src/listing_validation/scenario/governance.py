"""Application of the governance change under test.

Proposal creation and voting are out of scope: a change is a single blocking
``apply`` that returns once the new configuration is in effect.
"""

from __future__ import annotations

from typing import Callable, Protocol

from listing_validation.core.impersonation import ImpersonationScope
from listing_validation.data.constants import EXECUTE_SELECTOR
from listing_validation.data.models import normalize_address
from listing_validation.data.protocol import ProtocolClient


class GovernanceChange(Protocol):
    """An opaque, configuration-changing action."""

    @property
    def description(self) -> str: ...

    def apply(self, client: ProtocolClient) -> None: ...


class CallableChange:
    """Wrap any callable taking the client as a governance change."""

    def __init__(
        self,
        fn: Callable[[ProtocolClient], None],
        description: str = "callable change",
    ) -> None:
        self._fn = fn
        self._description = description

    @property
    def description(self) -> str:
        return self._description

    def apply(self, client: ProtocolClient) -> None:
        self._fn(client)


class ImpersonatedExecution:
    """Send ``calldata`` to ``target`` as a privileged executor.

    Typical use is a governance executor delegating to a listing payload's
    ``execute()``.
    """

    def __init__(self, executor: str, target: str, calldata: str = EXECUTE_SELECTOR) -> None:
        self.executor = normalize_address(executor)
        self.target = normalize_address(target)
        if not calldata.startswith("0x"):
            calldata = "0x" + calldata
        self.calldata = calldata

    @property
    def description(self) -> str:
        return f"{self.executor} -> {self.target} ({self.calldata[:10]})"

    def apply(self, client: ProtocolClient) -> None:
        with ImpersonationScope(client, self.executor) as authority:
            client.send_transaction(authority, self.target, self.calldata)
