"""
Full Uproar Permissions
=======================

Role-based access control for the admin surfaces.

Features:
- Resource taxonomy following "namespace:capability" naming
- Static, read-only role -> permission table
- Whitelist evaluation: absence of a matching grant is a denial
- Admin section gates (any-of over a fixed permission list)

Precedence in has_permission (first match wins):
1. actor email equals GOD_EMAIL
2. roles contain Role.GOD
3. any grant whose resource is the wildcard, or whose resource matches and
   whose action is the wildcard or the requested action
"""

from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Iterable, List, Mapping, Optional, Tuple, Union


GOD_EMAIL = "info@fulluproar.com"


class Resource(str, Enum):
    """Every protected resource. WILDCARD matches all of them."""

    WILDCARD = "*"

    # =========================================================================
    # ADMIN SECTIONS
    # =========================================================================
    ADMIN_ACCESS = "admin:access"
    ADMIN_DASHBOARD = "admin:dashboard"
    ADMIN_ANALYTICS = "admin:analytics"
    ADMIN_SETTINGS = "admin:settings"

    # =========================================================================
    # PRODUCT MANAGEMENT
    # =========================================================================
    PRODUCTS_READ = "products:read"
    PRODUCTS_CREATE = "products:create"
    PRODUCTS_UPDATE = "products:update"
    PRODUCTS_DELETE = "products:delete"
    PRODUCTS_PRICING = "products:pricing"
    PRODUCTS_INVENTORY = "products:inventory"

    # =========================================================================
    # ORDER MANAGEMENT
    # =========================================================================
    ORDERS_READ = "orders:read"
    ORDERS_UPDATE = "orders:update"
    ORDERS_REFUND = "orders:refund"
    ORDERS_CANCEL = "orders:cancel"
    ORDERS_FULFILL = "orders:fulfill"
    ORDERS_SHIPPING = "orders:shipping"

    # =========================================================================
    # CUSTOMER MANAGEMENT
    # =========================================================================
    CUSTOMERS_READ = "customers:read"
    CUSTOMERS_UPDATE = "customers:update"
    CUSTOMERS_DELETE = "customers:delete"
    CUSTOMERS_SUPPORT = "customers:support"
    CUSTOMERS_COMMUNICATE = "customers:communicate"

    # =========================================================================
    # USER MANAGEMENT
    # =========================================================================
    USERS_READ = "users:read"
    USERS_CREATE = "users:create"
    USERS_UPDATE = "users:update"
    USERS_DELETE = "users:delete"
    USERS_ROLES = "users:roles"
    USERS_PERMISSIONS = "users:permissions"
    USERS_BAN = "users:ban"
    USERS_MUTE = "users:mute"

    # =========================================================================
    # MARKETING
    # =========================================================================
    MARKETING_CAMPAIGNS = "marketing:campaigns"
    MARKETING_EMAIL = "marketing:email"
    MARKETING_SOCIAL = "marketing:social"
    MARKETING_CONTENT = "marketing:content"
    MARKETING_SEO = "marketing:seo"
    MARKETING_ANALYTICS = "marketing:analytics"

    # =========================================================================
    # FINANCE
    # =========================================================================
    FINANCE_READ = "finance:read"
    FINANCE_REPORTS = "finance:reports"
    FINANCE_EXPORT = "finance:export"
    FINANCE_RECONCILE = "finance:reconcile"

    # =========================================================================
    # HR
    # =========================================================================
    HR_EMPLOYEES = "hr:employees"
    HR_PAYROLL = "hr:payroll"
    HR_SCHEDULE = "hr:schedule"
    HR_PERFORMANCE = "hr:performance"

    # =========================================================================
    # CONTENT
    # =========================================================================
    CONTENT_BLOG = "content:blog"
    CONTENT_COMICS = "content:comics"
    CONTENT_ARTWORK = "content:artwork"
    CONTENT_FORUM = "content:forum"
    CONTENT_NEWS = "content:news"

    # =========================================================================
    # INTEGRATIONS
    # =========================================================================
    INTEGRATIONS_STRIPE = "integrations:stripe"
    INTEGRATIONS_PRINTIFY = "integrations:printify"
    INTEGRATIONS_SHIPPING = "integrations:shipping"
    INTEGRATIONS_API = "integrations:api"

    # =========================================================================
    # SYSTEM
    # =========================================================================
    SYSTEM_LOGS = "system:logs"
    SYSTEM_BACKUPS = "system:backups"
    SYSTEM_DEBUG = "system:debug"
    SYSTEM_MIGRATIONS = "system:migrations"
    SYSTEM_CACHE = "system:cache"
    SYSTEM_SECURITY = "system:security"


class Action(str, Enum):
    READ = "read"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    EXECUTE = "execute"
    WILDCARD = "*"


class Role(str, Enum):
    GOD = "GOD"                           # absolute power
    SUPER_ADMIN = "SUPER_ADMIN"           # full system access
    ADMIN = "ADMIN"                       # standard admin access
    HR = "HR"
    PRODUCT_MANAGER = "PRODUCT_MANAGER"
    MARKETING = "MARKETING"
    CUSTOMER_SERVICE = "CUSTOMER_SERVICE"
    WAREHOUSE = "WAREHOUSE"
    ACCOUNTING = "ACCOUNTING"
    CONTENT_CREATOR = "CONTENT_CREATOR"
    MODERATOR = "MODERATOR"
    INTERN = "INTERN"
    USER = "USER"                         # regular customer
    GUEST = "GUEST"                       # not logged in


@dataclass(frozen=True)
class Permission:
    """A (resource, action) capability grant."""
    resource: Resource
    action: Action = Action.READ


RoleLike = Union[Role, str]


def is_wildcard_resource(resource: Union[Resource, str]) -> bool:
    return resource == Resource.WILDCARD


def is_wildcard_action(action: Union[Action, str]) -> bool:
    return action == Action.WILDCARD


def _grants(*entries: Tuple[Resource, Action]) -> Tuple[Permission, ...]:
    return tuple(Permission(resource, action) for resource, action in entries)


R, A = Resource, Action

_ROLE_PERMISSIONS = {
    Role.GOD: _grants(
        (R.WILDCARD, A.WILDCARD),
    ),

    # Almost everything except finance reconciliation, HR payroll and migrations
    Role.SUPER_ADMIN: _grants(
        (R.ADMIN_ACCESS, A.WILDCARD),
        (R.ADMIN_DASHBOARD, A.WILDCARD),
        (R.ADMIN_ANALYTICS, A.WILDCARD),
        (R.ADMIN_SETTINGS, A.WILDCARD),
        (R.PRODUCTS_READ, A.WILDCARD),
        (R.PRODUCTS_CREATE, A.WILDCARD),
        (R.PRODUCTS_UPDATE, A.WILDCARD),
        (R.PRODUCTS_DELETE, A.WILDCARD),
        (R.PRODUCTS_PRICING, A.WILDCARD),
        (R.PRODUCTS_INVENTORY, A.WILDCARD),
        (R.ORDERS_READ, A.WILDCARD),
        (R.ORDERS_UPDATE, A.WILDCARD),
        (R.ORDERS_REFUND, A.WILDCARD),
        (R.ORDERS_CANCEL, A.WILDCARD),
        (R.ORDERS_FULFILL, A.WILDCARD),
        (R.ORDERS_SHIPPING, A.WILDCARD),
        (R.CUSTOMERS_READ, A.WILDCARD),
        (R.CUSTOMERS_UPDATE, A.WILDCARD),
        (R.CUSTOMERS_DELETE, A.WILDCARD),
        (R.CUSTOMERS_SUPPORT, A.WILDCARD),
        (R.CUSTOMERS_COMMUNICATE, A.WILDCARD),
        (R.USERS_READ, A.WILDCARD),
        (R.USERS_CREATE, A.WILDCARD),
        (R.USERS_UPDATE, A.WILDCARD),
        (R.USERS_DELETE, A.WILDCARD),
        (R.USERS_ROLES, A.WILDCARD),
        (R.USERS_PERMISSIONS, A.WILDCARD),
        (R.USERS_BAN, A.WILDCARD),
        (R.USERS_MUTE, A.WILDCARD),
        (R.MARKETING_CAMPAIGNS, A.WILDCARD),
        (R.MARKETING_EMAIL, A.WILDCARD),
        (R.MARKETING_SOCIAL, A.WILDCARD),
        (R.MARKETING_CONTENT, A.WILDCARD),
        (R.MARKETING_SEO, A.WILDCARD),
        (R.MARKETING_ANALYTICS, A.WILDCARD),
        (R.FINANCE_READ, A.WILDCARD),
        (R.FINANCE_REPORTS, A.WILDCARD),
        (R.FINANCE_EXPORT, A.WILDCARD),
        (R.HR_EMPLOYEES, A.WILDCARD),
        (R.CONTENT_BLOG, A.WILDCARD),
        (R.CONTENT_COMICS, A.WILDCARD),
        (R.CONTENT_ARTWORK, A.WILDCARD),
        (R.CONTENT_FORUM, A.WILDCARD),
        (R.CONTENT_NEWS, A.WILDCARD),
        (R.INTEGRATIONS_STRIPE, A.WILDCARD),
        (R.INTEGRATIONS_PRINTIFY, A.WILDCARD),
        (R.INTEGRATIONS_SHIPPING, A.WILDCARD),
        (R.INTEGRATIONS_API, A.WILDCARD),
        (R.SYSTEM_LOGS, A.READ),
        (R.SYSTEM_BACKUPS, A.WILDCARD),
        (R.SYSTEM_DEBUG, A.WILDCARD),
        (R.SYSTEM_CACHE, A.WILDCARD),
        (R.SYSTEM_SECURITY, A.WILDCARD),
    ),

    # Most operations but nothing system-level
    Role.ADMIN: _grants(
        (R.ADMIN_ACCESS, A.WILDCARD),
        (R.ADMIN_DASHBOARD, A.WILDCARD),
        (R.ADMIN_ANALYTICS, A.READ),
        (R.PRODUCTS_READ, A.WILDCARD),
        (R.PRODUCTS_CREATE, A.WILDCARD),
        (R.PRODUCTS_UPDATE, A.WILDCARD),
        (R.PRODUCTS_DELETE, A.WILDCARD),
        (R.PRODUCTS_PRICING, A.WILDCARD),
        (R.PRODUCTS_INVENTORY, A.WILDCARD),
        (R.ORDERS_READ, A.WILDCARD),
        (R.ORDERS_UPDATE, A.WILDCARD),
        (R.ORDERS_REFUND, A.WILDCARD),
        (R.ORDERS_CANCEL, A.WILDCARD),
        (R.ORDERS_FULFILL, A.WILDCARD),
        (R.ORDERS_SHIPPING, A.WILDCARD),
        (R.CUSTOMERS_READ, A.WILDCARD),
        (R.CUSTOMERS_UPDATE, A.WILDCARD),
        (R.CUSTOMERS_SUPPORT, A.WILDCARD),
        (R.CUSTOMERS_COMMUNICATE, A.WILDCARD),
        (R.USERS_READ, A.WILDCARD),
        (R.USERS_UPDATE, A.WILDCARD),
        (R.USERS_BAN, A.WILDCARD),
        (R.USERS_MUTE, A.WILDCARD),
        (R.CONTENT_BLOG, A.WILDCARD),
        (R.CONTENT_COMICS, A.WILDCARD),
        (R.CONTENT_ARTWORK, A.WILDCARD),
        (R.CONTENT_FORUM, A.WILDCARD),
        (R.CONTENT_NEWS, A.WILDCARD),
        (R.INTEGRATIONS_STRIPE, A.READ),
        (R.INTEGRATIONS_PRINTIFY, A.WILDCARD),
        (R.INTEGRATIONS_SHIPPING, A.WILDCARD),
    ),

    Role.HR: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.USERS_READ, A.WILDCARD),
        (R.USERS_CREATE, A.WILDCARD),
        (R.USERS_UPDATE, A.WILDCARD),
        (R.USERS_ROLES, A.WILDCARD),
        (R.HR_EMPLOYEES, A.WILDCARD),
        (R.HR_PAYROLL, A.WILDCARD),
        (R.HR_SCHEDULE, A.WILDCARD),
        (R.HR_PERFORMANCE, A.WILDCARD),
        (R.CUSTOMERS_READ, A.READ),
    ),

    Role.PRODUCT_MANAGER: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.ADMIN_ANALYTICS, A.READ),
        (R.PRODUCTS_READ, A.WILDCARD),
        (R.PRODUCTS_CREATE, A.WILDCARD),
        (R.PRODUCTS_UPDATE, A.WILDCARD),
        (R.PRODUCTS_DELETE, A.WILDCARD),
        (R.PRODUCTS_PRICING, A.WILDCARD),
        (R.PRODUCTS_INVENTORY, A.WILDCARD),
        (R.ORDERS_READ, A.READ),
        (R.CUSTOMERS_READ, A.READ),
        (R.MARKETING_ANALYTICS, A.READ),
        (R.INTEGRATIONS_PRINTIFY, A.WILDCARD),
    ),

    Role.MARKETING: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.ADMIN_ANALYTICS, A.READ),
        (R.PRODUCTS_READ, A.READ),
        (R.PRODUCTS_UPDATE, A.UPDATE),  # marketing copy on product pages
        (R.MARKETING_CAMPAIGNS, A.WILDCARD),
        (R.MARKETING_EMAIL, A.WILDCARD),
        (R.MARKETING_SOCIAL, A.WILDCARD),
        (R.MARKETING_CONTENT, A.WILDCARD),
        (R.MARKETING_SEO, A.WILDCARD),
        (R.MARKETING_ANALYTICS, A.WILDCARD),
        (R.CONTENT_BLOG, A.WILDCARD),
        (R.CONTENT_COMICS, A.WILDCARD),
        (R.CONTENT_ARTWORK, A.WILDCARD),
        (R.CONTENT_NEWS, A.WILDCARD),
        (R.CUSTOMERS_READ, A.READ),
        (R.CUSTOMERS_COMMUNICATE, A.WILDCARD),
    ),

    Role.CUSTOMER_SERVICE: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.PRODUCTS_READ, A.READ),
        (R.ORDERS_READ, A.WILDCARD),
        (R.ORDERS_UPDATE, A.WILDCARD),
        (R.ORDERS_REFUND, A.WILDCARD),
        (R.ORDERS_CANCEL, A.WILDCARD),
        (R.CUSTOMERS_READ, A.WILDCARD),
        (R.CUSTOMERS_UPDATE, A.UPDATE),
        (R.CUSTOMERS_SUPPORT, A.WILDCARD),
        (R.CUSTOMERS_COMMUNICATE, A.WILDCARD),
        (R.CONTENT_FORUM, A.UPDATE),  # moderation
    ),

    Role.WAREHOUSE: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.PRODUCTS_READ, A.READ),
        (R.PRODUCTS_INVENTORY, A.WILDCARD),
        (R.ORDERS_READ, A.READ),
        (R.ORDERS_FULFILL, A.WILDCARD),
        (R.ORDERS_SHIPPING, A.WILDCARD),
        (R.INTEGRATIONS_SHIPPING, A.WILDCARD),
        (R.INTEGRATIONS_PRINTIFY, A.READ),
    ),

    Role.ACCOUNTING: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.ADMIN_ANALYTICS, A.READ),
        (R.PRODUCTS_READ, A.READ),
        (R.PRODUCTS_PRICING, A.READ),
        (R.ORDERS_READ, A.READ),
        (R.ORDERS_REFUND, A.READ),
        (R.FINANCE_READ, A.WILDCARD),
        (R.FINANCE_REPORTS, A.WILDCARD),
        (R.FINANCE_EXPORT, A.WILDCARD),
        (R.FINANCE_RECONCILE, A.WILDCARD),
        (R.INTEGRATIONS_STRIPE, A.READ),
        (R.CUSTOMERS_READ, A.READ),
    ),

    Role.CONTENT_CREATOR: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.CONTENT_BLOG, A.WILDCARD),
        (R.CONTENT_COMICS, A.WILDCARD),
        (R.CONTENT_ARTWORK, A.WILDCARD),
        (R.CONTENT_NEWS, A.WILDCARD),
        (R.MARKETING_CONTENT, A.WILDCARD),
        (R.PRODUCTS_READ, A.READ),
    ),

    Role.MODERATOR: _grants(
        (R.CONTENT_FORUM, A.WILDCARD),
        (R.USERS_READ, A.READ),
        (R.USERS_BAN, A.WILDCARD),
        (R.USERS_MUTE, A.WILDCARD),
        (R.CUSTOMERS_READ, A.READ),
    ),

    # Mostly read-only; may draft posts and marketing content
    Role.INTERN: _grants(
        (R.ADMIN_ACCESS, A.READ),
        (R.ADMIN_DASHBOARD, A.READ),
        (R.PRODUCTS_READ, A.READ),
        (R.ORDERS_READ, A.READ),
        (R.CUSTOMERS_READ, A.READ),
        (R.CONTENT_BLOG, A.CREATE),
        (R.MARKETING_CONTENT, A.CREATE),
    ),

    # Ownership scoping (own orders, own profile) is enforced by the callers
    Role.USER: _grants(
        (R.ORDERS_READ, A.READ),
        (R.CUSTOMERS_UPDATE, A.UPDATE),
        (R.CONTENT_FORUM, A.CREATE),
    ),

    Role.GUEST: _grants(
        (R.PRODUCTS_READ, A.READ),
    ),
}

ROLE_PERMISSIONS: Mapping[Role, Tuple[Permission, ...]] = MappingProxyType(_ROLE_PERMISSIONS)

del R, A


# =============================================================================
# ADMIN SECTIONS: any one listed permission opens the section
# =============================================================================

ADMIN_SECTIONS: Mapping[str, Tuple[Permission, ...]] = MappingProxyType({
    "dashboard": (Permission(Resource.ADMIN_DASHBOARD),),
    "analytics": (Permission(Resource.ADMIN_ANALYTICS), Permission(Resource.MARKETING_ANALYTICS)),
    "products": (Permission(Resource.PRODUCTS_READ),),
    "products/new": (Permission(Resource.PRODUCTS_CREATE),),
    "products/edit": (Permission(Resource.PRODUCTS_UPDATE),),
    "orders": (Permission(Resource.ORDERS_READ),),
    "orders/fulfill": (Permission(Resource.ORDERS_FULFILL),),
    "customers": (Permission(Resource.CUSTOMERS_READ),),
    "customers/support": (Permission(Resource.CUSTOMERS_SUPPORT),),
    "users": (Permission(Resource.USERS_READ),),
    "users/roles": (Permission(Resource.USERS_ROLES),),
    "marketing": (Permission(Resource.MARKETING_CAMPAIGNS), Permission(Resource.MARKETING_CONTENT)),
    "finance": (Permission(Resource.FINANCE_READ),),
    "hr": (Permission(Resource.HR_EMPLOYEES),),
    "content": (
        Permission(Resource.CONTENT_BLOG),
        Permission(Resource.CONTENT_COMICS),
        Permission(Resource.CONTENT_ARTWORK),
        Permission(Resource.CONTENT_NEWS),
    ),
    "integrations": (
        Permission(Resource.INTEGRATIONS_STRIPE),
        Permission(Resource.INTEGRATIONS_PRINTIFY),
        Permission(Resource.INTEGRATIONS_SHIPPING),
    ),
    "settings": (Permission(Resource.ADMIN_SETTINGS),),
    "system": (
        Permission(Resource.SYSTEM_LOGS),
        Permission(Resource.SYSTEM_DEBUG),
        Permission(Resource.SYSTEM_SECURITY),
    ),
})


# =============================================================================
# EVALUATION
# =============================================================================

def _permissions_for(role: RoleLike) -> Tuple[Permission, ...]:
    """Grants of one role; unknown roles grant nothing."""
    try:
        return ROLE_PERMISSIONS[Role(role)]
    except (ValueError, KeyError):
        return ()


def is_god(roles: Iterable[RoleLike], actor_email: Optional[str] = None) -> bool:
    """True for the god email or any role set containing Role.GOD."""
    return actor_email == GOD_EMAIL or any(role == Role.GOD for role in roles)


def has_permission(
    roles: Iterable[RoleLike],
    resource: Union[Resource, str],
    action: Union[Action, str] = Action.READ,
    actor_email: Optional[str] = None,
) -> bool:
    """
    Decide whether a role set grants `action` on `resource`.

    Pure and deterministic; unknown roles, resources or actions simply deny.

    Args:
        roles: The caller's roles (Role members or their string values)
        resource: e.g. Resource.ORDERS_READ or "orders:read"
        action: e.g. Action.UPDATE or "update"
        actor_email: The caller's email, checked against GOD_EMAIL

    Returns:
        True if some grant matches
    """
    roles = list(roles)

    if is_god(roles, actor_email):
        return True

    for role in roles:
        for perm in _permissions_for(role):
            if is_wildcard_resource(perm.resource):
                return True
            if perm.resource == resource and (is_wildcard_action(perm.action) or perm.action == action):
                return True

    return False


def get_permissions_for_roles(roles: Iterable[RoleLike]) -> List[Permission]:
    """Union of the roles' grants, de-duplicated, first seen wins."""
    permissions: List[Permission] = []
    seen = set()

    for role in roles:
        for perm in _permissions_for(role):
            key = (perm.resource, perm.action)
            if key not in seen:
                seen.add(key)
                permissions.append(perm)

    return permissions


def can_access_admin_section(
    roles: Iterable[RoleLike],
    section: str,
    actor_email: Optional[str] = None,
) -> bool:
    """True if any of the section's permissions is granted. Unknown sections deny."""
    required = ADMIN_SECTIONS.get(section)
    if not required:
        return False

    roles = list(roles)
    return any(
        has_permission(roles, perm.resource, perm.action, actor_email)
        for perm in required
    )
