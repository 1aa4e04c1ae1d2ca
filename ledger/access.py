"""Role based access manager consumed by the hub and raffles."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterable, List

from core import get_logger
from core.constants import Roles
from core.exceptions import CallerNotOwner
from ledger.chain import Chain, Contract, to_address, transactional

logger = get_logger(__name__)


@dataclass
class AccessStorage:
    members: Dict[str, List[str]] = field(default_factory=dict)
    # target -> operation -> role
    function_roles: Dict[str, Dict[str, str]] = field(default_factory=dict)
    closed_targets: List[str] = field(default_factory=list)


def _role_key(role) -> str:
    return role.value if isinstance(role, Roles) else str(role)


class AccessManager(Contract):
    """Maps (target, operation) pairs to roles.

    The deployer holds ``ADMIN_ROLE``, which may call every restricted
    operation and is the only role allowed to change the configuration.
    """

    def __init__(self, chain: Chain, deployer: str) -> None:
        super().__init__(chain, deployer)
        self.storage = AccessStorage(members={Roles.ADMIN.value: [self.deployer]})

    def has_role(self, role, account: str) -> bool:
        return to_address(account) in self.storage.members.get(_role_key(role), [])

    def get_target_function_role(self, target: str, operation: str) -> str:
        return self.storage.function_roles.get(to_address(target), {}).get(
            operation, Roles.ADMIN.value
        )

    def is_closed(self, target: str) -> bool:
        return to_address(target) in self.storage.closed_targets

    def can_call(self, caller: str, target: str, operation: str) -> bool:
        """Whether ``caller`` may run ``operation`` on ``target`` right now."""
        if self.is_closed(target):
            return False
        if self.has_role(Roles.ADMIN, caller):
            return True
        return self.has_role(self.get_target_function_role(target, operation), caller)

    def _only_admin(self, sender: str) -> None:
        if not self.has_role(Roles.ADMIN, sender):
            raise CallerNotOwner(f"{sender} is not an access manager admin")

    @transactional
    def grant_role(self, role, account: str, *, sender: str) -> None:
        self._only_admin(sender)
        account = to_address(account)
        members = self.storage.members.setdefault(_role_key(role), [])
        if account not in members:
            members.append(account)
            self.emit("RoleGranted", role=_role_key(role), account=account, sender=sender)
            logger.info(f"Granted {_role_key(role)} to {account}")

    @transactional
    def revoke_role(self, role, account: str, *, sender: str) -> None:
        self._only_admin(sender)
        account = to_address(account)
        members = self.storage.members.get(_role_key(role), [])
        if account in members:
            members.remove(account)
            self.emit("RoleRevoked", role=_role_key(role), account=account, sender=sender)
            logger.info(f"Revoked {_role_key(role)} from {account}")

    @transactional
    def set_target_function_role(
        self, target: str, operations: Iterable[str], role, *, sender: str
    ) -> None:
        self._only_admin(sender)
        target = to_address(target)
        roles = self.storage.function_roles.setdefault(target, {})
        for operation in operations:
            roles[operation] = _role_key(role)
            self.emit(
                "TargetFunctionRoleUpdated",
                target=target,
                operation=operation,
                role=_role_key(role),
            )

    @transactional
    def close_target(self, target: str, *, sender: str) -> None:
        self._only_admin(sender)
        target = to_address(target)
        if target not in self.storage.closed_targets:
            self.storage.closed_targets.append(target)
        self.emit("TargetClosed", target=target, closed=True)

    @transactional
    def open_target(self, target: str, *, sender: str) -> None:
        self._only_admin(sender)
        target = to_address(target)
        if target in self.storage.closed_targets:
            self.storage.closed_targets.remove(target)
        self.emit("TargetClosed", target=target, closed=False)
