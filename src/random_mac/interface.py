from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Iterable

import psutil

from .errors import InterfaceNotFoundError, MutationError, PrivilegeError, RandomMacError
from .registry import VendorRegistry
from .vendor import VendorRecord, normalize_mac

logger = logging.getLogger(__name__)

AddressQuery = Callable[[str], "str | None"]
LinkControl = Callable[..., None]

DOWN = "down"
ADDRESS = "address"
UP = "up"


# -------------------------------------------------
# System collaborators
# -------------------------------------------------

def is_root() -> bool:
    try:
        return os.geteuid() == 0
    except AttributeError:
        # non-POSIX: cannot reliably check
        return False


def query_address(interface: str) -> str | None:
    """
    Current link-layer address of `interface`, or None when it has none.
    Raises InterfaceNotFoundError for unknown interfaces.
    """
    addrs = psutil.net_if_addrs()
    if interface not in addrs:
        raise InterfaceNotFoundError(interface)
    for a in addrs[interface]:
        if a.family == psutil.AF_LINK and a.address:
            return normalize_mac(a.address)
    return None


def ip_link(interface: str, action: str, *args: str) -> None:
    """
    `ip link set dev <interface> down|up|address <mac>`
    """
    cmd = ["ip", "link", "set", "dev", interface, action, *args]
    logger.debug("Running %s", " ".join(cmd))
    try:
        subprocess.run(cmd, check=True, capture_output=True, text=True)
    except subprocess.CalledProcessError as e:
        detail = (e.stderr or "").strip() or f"exit {e.returncode}"
        raise MutationError(action, interface, f"'{' '.join(cmd)}' failed: {detail}") from e
    except OSError as e:
        raise MutationError(action, interface, f"Failed to run 'ip': {e}") from e


# -------------------------------------------------
# Mutation workflow
# -------------------------------------------------

class MutationState(Enum):
    SELECTED = "selected"
    PROBED = "probed"
    DOWN = "down"
    REWRITTEN = "rewritten"
    UP = "up"
    ABORTED = "aborted"


_STEP_STATES = (
    (DOWN, MutationState.DOWN),
    (ADDRESS, MutationState.REWRITTEN),
    (UP, MutationState.UP),
)


@dataclass
class MutationResult:
    interface: str
    address: str
    state: MutationState = MutationState.SELECTED
    failed_step: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.state is MutationState.UP

    def abort(self, step: str, error: str) -> MutationResult:
        self.state = MutationState.ABORTED
        self.failed_step = step
        self.error = error
        return self


@dataclass
class InterfaceOutcome:
    interface: str
    current: str | None = None
    record: VendorRecord | None = None
    address: str | None = None
    mutation: MutationResult | None = None
    error: str | None = None


class InterfaceMutator:
    """
    Drives probe -> down -> set address -> up for each interface.

    Failures are reported per interface and never rolled back; later
    interfaces are still processed.
    """

    def __init__(
        self,
        query: AddressQuery = query_address,
        control: LinkControl = ip_link,
        is_privileged: Callable[[], bool] = is_root,
    ) -> None:
        self.query = query
        self.control = control
        self.is_privileged = is_privileged

    def require_privilege(self) -> None:
        if not self.is_privileged():
            raise PrivilegeError("You need to be root to run this command!")

    def mutate(self, interface: str, address: str, current: str | None = None) -> MutationResult:
        """
        `current` is the address already read from the interface, if any;
        without it the interface is probed first.
        """
        result = MutationResult(interface=interface, address=address)

        if current is None:
            try:
                current = self.query(interface)
            except (RandomMacError, OSError) as e:
                return result.abort("probe", f"Failed to get MAC address of {interface}: {e}")
            if current is None:
                return result.abort("probe", f"Interface '{interface}' has no MAC address")
        result.state = MutationState.PROBED

        for step, state in _STEP_STATES:
            args = (address,) if step == ADDRESS else ()
            try:
                self.control(interface, step, *args)
            except MutationError as e:
                logger.warning("%s: step %r failed: %s", interface, step, e)
                return result.abort(step, str(e))
            result.state = state

        logger.info("%s: %s -> %s", interface, current, address)
        return result

    def apply(self, record: VendorRecord, interfaces: Iterable[str]) -> list[MutationResult]:
        self.require_privilege()
        return [self.mutate(i, record.random_address()) for i in interfaces]

    def randomize(
        self,
        registry: VendorRegistry,
        interfaces: Iterable[str],
        change: bool = False,
    ) -> list[InterfaceOutcome]:
        """
        New address for each interface under the vendor prefix it already has.
        With `change`, the address is applied as well.
        """
        if change:
            self.require_privilege()

        out: list[InterfaceOutcome] = []
        for interface in interfaces:
            outcome = InterfaceOutcome(interface=interface)
            out.append(outcome)

            try:
                outcome.current = self.query(interface)
            except (RandomMacError, OSError) as e:
                outcome.error = f"Failed to get MAC address for interface {interface}: {e}"
                continue
            if outcome.current is None:
                outcome.error = f"No MAC address found for interface {interface}!"
                continue

            outcome.record = registry.lookup_by_prefix(outcome.current)
            if outcome.record is None:
                outcome.error = f"No registered vendor found for interface {interface}!"
                continue

            outcome.address = outcome.record.random_address()
            if change:
                outcome.mutation = self.mutate(interface, outcome.address, outcome.current)
        return out
