"""
gouraan_core/security/role_table.py - 静态角色权限表

角色 → 权限码集合的查找表，外加一条从低到高的角色层级：
高层级角色同时拥有其下所有角色的权限。超级角色拥有全部权限。
应用层在启动时注册具体角色（见 gouraan.security.permissions）。
"""
from typing import Dict, Iterable, List, Optional, Set
import threading


class RolePermissionTable:
    """角色权限表"""

    def __init__(self):
        self._role_permissions: Dict[str, Set[str]] = {}
        self._hierarchy: List[str] = []
        self._superuser_roles: Set[str] = set()
        self._all_permissions: Set[str] = set()
        self._lock = threading.Lock()

    def register_permissions(self, permissions: Iterable[str]) -> None:
        """登记系统中存在的全部权限码（超级角色据此获得全部权限）"""
        with self._lock:
            self._all_permissions.update(permissions)

    def register_role(self, role: str, permissions: Iterable[str]) -> None:
        """注册角色及其直接权限（重复注册覆盖）"""
        perms = set(permissions)
        with self._lock:
            self._role_permissions[role] = perms
            self._all_permissions.update(perms)

    def set_hierarchy(self, roles: List[str]) -> None:
        """设置角色层级，从低到高"""
        with self._lock:
            self._hierarchy = list(roles)

    def set_superuser_roles(self, roles: Iterable[str]) -> None:
        """设置拥有全部权限的角色"""
        with self._lock:
            self._superuser_roles = set(roles)

    def role_permissions(self, role: str) -> Set[str]:
        """角色的直接权限（不含层级继承）"""
        if role in self._superuser_roles:
            return set(self._all_permissions)
        return set(self._role_permissions.get(role, set()))

    def get_permissions_for_roles(self, roles: Iterable[str]) -> Set[str]:
        """多个角色的有效权限并集，包含层级中更低角色的权限"""
        result: Set[str] = set()
        for role in roles:
            result |= self.role_permissions(role)
            if role in self._hierarchy:
                for lower in self._hierarchy[:self._hierarchy.index(role)]:
                    result |= self.role_permissions(lower)
        return result

    def has_permission(self, roles: Iterable[str], permission: str) -> bool:
        """检查角色集合是否拥有指定权限"""
        roles = list(roles)
        if any(r in self._superuser_roles for r in roles):
            return True
        return permission in self.get_permissions_for_roles(roles)

    def has_any_permission(self, roles: Iterable[str], permissions: Iterable[str]) -> bool:
        """任一权限匹配即通过（OR 逻辑）"""
        roles = list(roles)
        return any(self.has_permission(roles, p) for p in permissions)

    def get_roles(self) -> List[str]:
        """已注册角色列表"""
        return list(self._role_permissions.keys())

    def get_hierarchy(self) -> List[str]:
        return list(self._hierarchy)

    def is_known_role(self, role: Optional[str]) -> bool:
        return role in self._role_permissions or role in self._superuser_roles

    def clear(self) -> None:
        """清空（用于测试）"""
        with self._lock:
            self._role_permissions.clear()
            self._hierarchy = []
            self._superuser_roles = set()
            self._all_permissions.clear()


# 模块级实例
role_permission_table = RolePermissionTable()
