"""
安全抽象 - 静态角色权限表
"""
from gouraan_core.security.role_table import RolePermissionTable, role_permission_table

__all__ = ["RolePermissionTable", "role_permission_table"]
