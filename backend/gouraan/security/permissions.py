"""
权限码与角色映射

在启动时注册到 gouraan_core 的角色权限表。
"""
from typing import List, Set

from gouraan_core.security import role_permission_table, RolePermissionTable
from gouraan.models.entities import UserRole


class Permissions:
    """系统权限码"""
    # 客户
    BOOK_FLIGHT = "book_flight"
    BOOK_HOTEL = "book_hotel"
    BOOK_PACKAGE = "book_package"
    MANAGE_BOOKINGS = "manage_bookings"
    EARN_LOYALTY_POINTS = "earn_loyalty_points"
    DOWNLOAD_DOCUMENTS = "download_documents"

    # 旅行代理
    ACCESS_WHOLESALE_RATES = "access_wholesale_rates"
    CREATE_PACKAGE_DEALS = "create_package_deals"
    VIEW_COMMISSION_REPORTS = "view_commission_reports"
    MANAGE_AGENT_CUSTOMERS = "manage_agent_customers"

    # 管理
    MANAGE_USERS = "manage_users"
    MANAGE_FLIGHTS = "manage_flights"
    MANAGE_HOTELS = "manage_hotels"
    MANAGE_PACKAGES = "manage_packages"
    MANAGE_OFFERS = "manage_offers"
    MANAGE_SETTINGS = "manage_settings"
    VIEW_REPORTS = "view_reports"

    # 财务
    MANAGE_INVOICES = "manage_invoices"
    PROCESS_REFUNDS = "process_refunds"
    VIEW_FINANCIAL_REPORTS = "view_financial_reports"

    # 客服
    MANAGE_TICKETS = "manage_tickets"
    LIVE_CHAT_SUPPORT = "live_chat_support"

    # 运营
    MANUAL_BOOKING_CONFIRMATION = "manual_booking_confirmation"
    MANAGE_HAJJ_PACKAGES = "manage_hajj_packages"
    MANAGE_UMRAH_PACKAGES = "manage_umrah_packages"

    @classmethod
    def all(cls) -> List[str]:
        return [v for k, v in vars(cls).items() if k.isupper() and isinstance(v, str)]


P = Permissions

CUSTOMER_PERMISSIONS = [
    P.BOOK_FLIGHT, P.BOOK_HOTEL, P.BOOK_PACKAGE,
    P.MANAGE_BOOKINGS, P.EARN_LOYALTY_POINTS, P.DOWNLOAD_DOCUMENTS,
]

ROLE_PERMISSIONS = {
    UserRole.CUSTOMER.value: CUSTOMER_PERMISSIONS,
    UserRole.TRAVEL_AGENT.value: CUSTOMER_PERMISSIONS + [
        P.ACCESS_WHOLESALE_RATES, P.CREATE_PACKAGE_DEALS,
        P.VIEW_COMMISSION_REPORTS, P.MANAGE_AGENT_CUSTOMERS,
    ],
    UserRole.FINANCE_STAFF.value: [
        P.MANAGE_INVOICES, P.PROCESS_REFUNDS, P.VIEW_FINANCIAL_REPORTS, P.VIEW_REPORTS,
    ],
    UserRole.SUPPORT_STAFF.value: [
        P.MANAGE_TICKETS, P.LIVE_CHAT_SUPPORT, P.MANAGE_BOOKINGS,
    ],
    UserRole.OPERATIONS_STAFF.value: [
        P.MANUAL_BOOKING_CONFIRMATION, P.MANAGE_HAJJ_PACKAGES, P.MANAGE_UMRAH_PACKAGES,
    ],
    UserRole.ADMIN.value: P.all(),
}

# 从低到高
ROLE_HIERARCHY = [
    UserRole.CUSTOMER.value,
    UserRole.TRAVEL_AGENT.value,
    UserRole.FINANCE_STAFF.value,
    UserRole.SUPPORT_STAFF.value,
    UserRole.OPERATIONS_STAFF.value,
    UserRole.ADMIN.value,
]

# 员工角色：可查看他人数据
STAFF_ROLES = {
    UserRole.FINANCE_STAFF, UserRole.SUPPORT_STAFF,
    UserRole.OPERATIONS_STAFF, UserRole.ADMIN,
}

# 允许自助注册的角色
SELF_REGISTER_ROLES = {UserRole.CUSTOMER, UserRole.TRAVEL_AGENT}


def register_travel_permissions(table: RolePermissionTable = None) -> RolePermissionTable:
    """把旅行平台的角色映射注册到角色权限表"""
    table = table or role_permission_table
    table.clear()
    table.register_permissions(P.all())
    for role, perms in ROLE_PERMISSIONS.items():
        table.register_role(role, perms)
    table.set_hierarchy(ROLE_HIERARCHY)
    table.set_superuser_roles([UserRole.ADMIN.value])
    return table


def _role_value(role) -> str:
    return role.value if isinstance(role, UserRole) else str(role)


def get_user_permissions(user) -> Set[str]:
    """用户的有效权限集合"""
    return role_permission_table.get_permissions_for_roles([_role_value(user.role)])


def user_has_permission(user, *permission_codes: str) -> bool:
    """任一权限码匹配即返回 True"""
    return role_permission_table.has_any_permission([_role_value(user.role)], permission_codes)


def is_staff(user) -> bool:
    return user.role in STAFF_ROLES


def can_manage_all_bookings(user) -> bool:
    """客户角色也持有 manage_bookings（管理自己的预订），查看他人预订需员工角色"""
    return is_staff(user) and user_has_permission(user, P.MANAGE_BOOKINGS)


# 模块导入即完成注册，lifespan 中会再次调用以重置
register_travel_permissions()
