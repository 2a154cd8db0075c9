from .auth import Guard, PrincipalMixin, User, SuperAdmin, GuardSession
from .tenancy import ShopOwner, Employee
from .security import SecurityEvent, AuditLog, SealedNotice

__all__ = [
    'Guard', 'PrincipalMixin',
    'User', 'SuperAdmin', 'ShopOwner', 'Employee',
    'GuardSession', 'SecurityEvent', 'AuditLog', 'SealedNotice',
]
