"""
Administrative roles and permissions.

Every admin endpoint is gated by a permission. Roles map to permission sets
through an immutable ``RolePermissionTable`` built once at import time
(``DEFAULT_PERMISSION_TABLE``). Routers receive it through the
``get_permission_table`` dependency so tests can swap in another table via
``app.dependency_overrides``.

Permission groups exist for readability: they are unioned into the role
table and reported back for display, nothing else.
"""
import enum
import logging
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Set, Union

logger = logging.getLogger(__name__)


class AdminPermission(str, enum.Enum):
    # User management
    MANAGE_USERS = "manage_users"
    MANAGE_SELLERS = "manage_sellers"
    MANAGE_COURIERS = "manage_couriers"
    MANAGE_CUSTOMERS = "manage_customers"
    MANAGE_ADMINS = "manage_admins"

    # Product management
    MANAGE_PRODUCTS = "manage_products"
    MANAGE_CATEGORIES = "manage_categories"
    MANAGE_INVENTORY = "manage_inventory"
    MANAGE_PRICING = "manage_pricing"

    # Order management
    MANAGE_ORDERS = "manage_orders"
    MANAGE_REFUNDS = "manage_refunds"
    MANAGE_SHIPPING = "manage_shipping"
    MANAGE_PAYMENTS = "manage_payments"

    # Content management
    MANAGE_CONTENT = "manage_content"
    MANAGE_BANNERS = "manage_banners"
    MANAGE_PAGES = "manage_pages"
    MANAGE_BLOG = "manage_blog"
    MANAGE_NEWS = "manage_news"

    # System management
    MANAGE_SETTINGS = "manage_settings"
    MANAGE_EMAILS = "manage_emails"
    MANAGE_NOTIFICATIONS = "manage_notifications"
    MANAGE_LOGS = "manage_logs"
    MANAGE_BACKUPS = "manage_backups"

    # Analytics and reports
    VIEW_ANALYTICS = "view_analytics"
    VIEW_REPORTS = "view_reports"
    EXPORT_DATA = "export_data"
    VIEW_LOGS = "view_logs"

    # Security
    MANAGE_SECURITY = "manage_security"
    MANAGE_ROLES = "manage_roles"
    MANAGE_PERMISSIONS = "manage_permissions"
    VIEW_AUDIT_LOGS = "view_audit_logs"

    # Financial management
    MANAGE_FINANCES = "manage_finances"
    MANAGE_COMMISSIONS = "manage_commissions"
    MANAGE_TAXES = "manage_taxes"
    MANAGE_PAYOUTS = "manage_payouts"

    # Marketing
    MANAGE_MARKETING = "manage_marketing"
    MANAGE_COUPONS = "manage_coupons"
    MANAGE_PROMOTIONS = "manage_promotions"
    MANAGE_EMAIL_CAMPAIGNS = "manage_email_campaigns"

    # Support
    MANAGE_SUPPORT = "manage_support"
    MANAGE_TICKETS = "manage_tickets"
    MANAGE_CHAT = "manage_chat"
    MANAGE_FAQ = "manage_faq"

    # Advanced features
    MANAGE_INTEGRATIONS = "manage_integrations"
    MANAGE_API = "manage_api"
    MANAGE_WEBHOOKS = "manage_webhooks"
    MANAGE_CRON_JOBS = "manage_cron_jobs"

    # Site design
    MANAGE_THEME = "manage_theme"
    MANAGE_LAYOUT = "manage_layout"
    MANAGE_NAVIGATION = "manage_navigation"
    MANAGE_FOOTER = "manage_footer"
    MANAGE_HEADER = "manage_header"

    # Database management
    MANAGE_DATABASE = "manage_database"
    MANAGE_MIGRATIONS = "manage_migrations"
    MANAGE_SEEDS = "manage_seeds"
    MANAGE_INDEXES = "manage_indexes"

    # File management
    MANAGE_FILES = "manage_files"
    MANAGE_IMAGES = "manage_images"
    MANAGE_DOCUMENTS = "manage_documents"
    MANAGE_MEDIA = "manage_media"

    # Communication
    MANAGE_MESSAGES = "manage_messages"
    MANAGE_ANNOUNCEMENTS = "manage_announcements"
    MANAGE_FEEDBACK = "manage_feedback"
    MANAGE_REVIEWS = "manage_reviews"

    # Location management
    MANAGE_LOCATIONS = "manage_locations"
    MANAGE_ZONES = "manage_zones"
    MANAGE_DELIVERY_AREAS = "manage_delivery_areas"
    MANAGE_WAREHOUSES = "manage_warehouses"

    # Quality control
    MANAGE_QUALITY = "manage_quality"
    MANAGE_INSPECTIONS = "manage_inspections"
    MANAGE_COMPLAINTS = "manage_complaints"
    MANAGE_DISPUTES = "manage_disputes"

    # Legal and compliance
    MANAGE_LEGAL = "manage_legal"
    MANAGE_TERMS = "manage_terms"
    MANAGE_PRIVACY = "manage_privacy"
    MANAGE_COOKIES = "manage_cookies"

    # Performance and monitoring
    MANAGE_PERFORMANCE = "manage_performance"
    MANAGE_CACHE = "manage_cache"
    MANAGE_CDN = "manage_cdn"
    MANAGE_MONITORING = "manage_monitoring"

    # Development
    MANAGE_DEVELOPMENT = "manage_development"
    MANAGE_FEATURES = "manage_features"
    MANAGE_EXPERIMENTS = "manage_experiments"
    MANAGE_BETA = "manage_beta"

    # Top level
    SUPER_ADMIN = "super_admin"
    SYSTEM_ADMIN = "system_admin"
    PLATFORM_ADMIN = "platform_admin"


class AdminRole(str, enum.Enum):
    SUPER_ADMIN = "SUPER_ADMIN"
    SYSTEM_ADMIN = "SYSTEM_ADMIN"
    PLATFORM_ADMIN = "PLATFORM_ADMIN"
    CONTENT_ADMIN = "CONTENT_ADMIN"
    FINANCE_ADMIN = "FINANCE_ADMIN"
    SUPPORT_ADMIN = "SUPPORT_ADMIN"
    MARKETING_ADMIN = "MARKETING_ADMIN"
    ANALYTICS_ADMIN = "ANALYTICS_ADMIN"
    SECURITY_ADMIN = "SECURITY_ADMIN"
    MODERATOR = "MODERATOR"


P = AdminPermission

PERMISSION_GROUPS: Mapping[str, FrozenSet[AdminPermission]] = MappingProxyType({
    "USER_MANAGEMENT": frozenset({
        P.MANAGE_USERS, P.MANAGE_SELLERS, P.MANAGE_COURIERS, P.MANAGE_CUSTOMERS, P.MANAGE_ADMINS,
    }),
    "PRODUCT_MANAGEMENT": frozenset({
        P.MANAGE_PRODUCTS, P.MANAGE_CATEGORIES, P.MANAGE_INVENTORY, P.MANAGE_PRICING,
    }),
    "ORDER_MANAGEMENT": frozenset({
        P.MANAGE_ORDERS, P.MANAGE_REFUNDS, P.MANAGE_SHIPPING, P.MANAGE_PAYMENTS,
    }),
    "CONTENT_MANAGEMENT": frozenset({
        P.MANAGE_CONTENT, P.MANAGE_BANNERS, P.MANAGE_PAGES, P.MANAGE_BLOG, P.MANAGE_NEWS,
    }),
    "SYSTEM_MANAGEMENT": frozenset({
        P.MANAGE_SETTINGS, P.MANAGE_EMAILS, P.MANAGE_NOTIFICATIONS, P.MANAGE_LOGS, P.MANAGE_BACKUPS,
    }),
    "ANALYTICS_REPORTS": frozenset({
        P.VIEW_ANALYTICS, P.VIEW_REPORTS, P.EXPORT_DATA, P.VIEW_LOGS,
    }),
    "SECURITY": frozenset({
        P.MANAGE_SECURITY, P.MANAGE_ROLES, P.MANAGE_PERMISSIONS, P.VIEW_AUDIT_LOGS,
    }),
    "FINANCIAL_MANAGEMENT": frozenset({
        P.MANAGE_FINANCES, P.MANAGE_COMMISSIONS, P.MANAGE_TAXES, P.MANAGE_PAYOUTS,
    }),
    "MARKETING": frozenset({
        P.MANAGE_MARKETING, P.MANAGE_COUPONS, P.MANAGE_PROMOTIONS, P.MANAGE_EMAIL_CAMPAIGNS,
    }),
    "SUPPORT": frozenset({
        P.MANAGE_SUPPORT, P.MANAGE_TICKETS, P.MANAGE_CHAT, P.MANAGE_FAQ,
    }),
    "ADVANCED_FEATURES": frozenset({
        P.MANAGE_INTEGRATIONS, P.MANAGE_API, P.MANAGE_WEBHOOKS, P.MANAGE_CRON_JOBS,
    }),
    "SITE_DESIGN": frozenset({
        P.MANAGE_THEME, P.MANAGE_LAYOUT, P.MANAGE_NAVIGATION, P.MANAGE_FOOTER, P.MANAGE_HEADER,
    }),
    "DATABASE_MANAGEMENT": frozenset({
        P.MANAGE_DATABASE, P.MANAGE_MIGRATIONS, P.MANAGE_SEEDS, P.MANAGE_INDEXES,
    }),
    "FILE_MANAGEMENT": frozenset({
        P.MANAGE_FILES, P.MANAGE_IMAGES, P.MANAGE_DOCUMENTS, P.MANAGE_MEDIA,
    }),
    "COMMUNICATION": frozenset({
        P.MANAGE_MESSAGES, P.MANAGE_ANNOUNCEMENTS, P.MANAGE_FEEDBACK, P.MANAGE_REVIEWS,
    }),
    "LOCATION_MANAGEMENT": frozenset({
        P.MANAGE_LOCATIONS, P.MANAGE_ZONES, P.MANAGE_DELIVERY_AREAS, P.MANAGE_WAREHOUSES,
    }),
    "QUALITY_CONTROL": frozenset({
        P.MANAGE_QUALITY, P.MANAGE_INSPECTIONS, P.MANAGE_COMPLAINTS, P.MANAGE_DISPUTES,
    }),
    "LEGAL_COMPLIANCE": frozenset({
        P.MANAGE_LEGAL, P.MANAGE_TERMS, P.MANAGE_PRIVACY, P.MANAGE_COOKIES,
    }),
    "PERFORMANCE_MONITORING": frozenset({
        P.MANAGE_PERFORMANCE, P.MANAGE_CACHE, P.MANAGE_CDN, P.MANAGE_MONITORING,
    }),
    "DEVELOPMENT": frozenset({
        P.MANAGE_DEVELOPMENT, P.MANAGE_FEATURES, P.MANAGE_EXPERIMENTS, P.MANAGE_BETA,
    }),
    "SUPER_ADMIN": frozenset({
        P.SUPER_ADMIN, P.SYSTEM_ADMIN, P.PLATFORM_ADMIN,
    }),
})

# Group names each role is built from; SUPER_ADMIN gets the whole enum instead
ROLE_GROUPS: Mapping[AdminRole, tuple] = MappingProxyType({
    AdminRole.SYSTEM_ADMIN: (
        "SYSTEM_MANAGEMENT", "SECURITY", "DATABASE_MANAGEMENT", "PERFORMANCE_MONITORING", "DEVELOPMENT",
    ),
    AdminRole.PLATFORM_ADMIN: (
        "USER_MANAGEMENT", "PRODUCT_MANAGEMENT", "ORDER_MANAGEMENT", "CONTENT_MANAGEMENT",
        "ANALYTICS_REPORTS", "FINANCIAL_MANAGEMENT", "MARKETING", "SUPPORT", "SITE_DESIGN",
    ),
    AdminRole.CONTENT_ADMIN: ("CONTENT_MANAGEMENT", "SITE_DESIGN", "FILE_MANAGEMENT", "COMMUNICATION"),
    AdminRole.FINANCE_ADMIN: ("FINANCIAL_MANAGEMENT", "ANALYTICS_REPORTS", "ORDER_MANAGEMENT"),
    AdminRole.SUPPORT_ADMIN: ("SUPPORT", "COMMUNICATION", "QUALITY_CONTROL"),
    AdminRole.MARKETING_ADMIN: ("MARKETING", "ANALYTICS_REPORTS", "CONTENT_MANAGEMENT"),
    AdminRole.ANALYTICS_ADMIN: ("ANALYTICS_REPORTS", "PERFORMANCE_MONITORING"),
    AdminRole.SECURITY_ADMIN: ("SECURITY", "SYSTEM_MANAGEMENT", "PERFORMANCE_MONITORING"),
})

MODERATOR_PERMISSIONS = frozenset({
    P.MANAGE_USERS, P.MANAGE_PRODUCTS, P.MANAGE_ORDERS, P.MANAGE_CONTENT, P.MANAGE_SUPPORT,
})

PERMISSION_DESCRIPTIONS: Mapping[AdminPermission, str] = MappingProxyType({
    P.MANAGE_USERS: "Manage all users",
    P.MANAGE_SELLERS: "Manage sellers and their permissions",
    P.MANAGE_COURIERS: "Manage couriers and their permissions",
    P.MANAGE_CUSTOMERS: "Manage customers and their data",
    P.MANAGE_ADMINS: "Manage admin users and roles",
    P.MANAGE_PRODUCTS: "Manage all products",
    P.MANAGE_CATEGORIES: "Manage product categories",
    P.MANAGE_INVENTORY: "Manage product inventory",
    P.MANAGE_PRICING: "Manage product pricing",
    P.MANAGE_ORDERS: "Manage all orders",
    P.MANAGE_REFUNDS: "Manage refunds and returns",
    P.MANAGE_SHIPPING: "Manage shipping and delivery",
    P.MANAGE_PAYMENTS: "Manage payment methods and transactions",
    P.MANAGE_CONTENT: "Manage website content",
    P.MANAGE_BANNERS: "Manage banners and advertisements",
    P.MANAGE_PAGES: "Manage website pages",
    P.MANAGE_BLOG: "Manage blog posts",
    P.MANAGE_NEWS: "Manage news and announcements",
    P.MANAGE_SETTINGS: "Manage system settings",
    P.MANAGE_EMAILS: "Manage email templates and campaigns",
    P.MANAGE_NOTIFICATIONS: "Manage notifications",
    P.MANAGE_LOGS: "Manage system logs",
    P.MANAGE_BACKUPS: "Manage backups and restore",
    P.VIEW_ANALYTICS: "View analytics and statistics",
    P.VIEW_REPORTS: "View and generate reports",
    P.EXPORT_DATA: "Export data and reports",
    P.VIEW_LOGS: "View system logs",
    P.MANAGE_SECURITY: "Manage security settings",
    P.MANAGE_ROLES: "Manage user roles",
    P.MANAGE_PERMISSIONS: "Manage permissions",
    P.VIEW_AUDIT_LOGS: "View audit logs",
    P.MANAGE_FINANCES: "Manage financial operations",
    P.MANAGE_COMMISSIONS: "Manage commissions and fees",
    P.MANAGE_TAXES: "Manage tax settings",
    P.MANAGE_PAYOUTS: "Manage payouts to sellers",
    P.MANAGE_MARKETING: "Manage marketing campaigns",
    P.MANAGE_COUPONS: "Manage coupons and discounts",
    P.MANAGE_PROMOTIONS: "Manage promotions and offers",
    P.MANAGE_EMAIL_CAMPAIGNS: "Manage email marketing campaigns",
    P.MANAGE_SUPPORT: "Manage customer support",
    P.MANAGE_TICKETS: "Manage support tickets",
    P.MANAGE_CHAT: "Manage live chat",
    P.MANAGE_FAQ: "Manage FAQ and help content",
    P.MANAGE_INTEGRATIONS: "Manage third-party integrations",
    P.MANAGE_API: "Manage API access and keys",
    P.MANAGE_WEBHOOKS: "Manage webhooks",
    P.MANAGE_CRON_JOBS: "Manage scheduled tasks",
    P.MANAGE_THEME: "Manage website theme",
    P.MANAGE_LAYOUT: "Manage website layout",
    P.MANAGE_NAVIGATION: "Manage navigation menu",
    P.MANAGE_FOOTER: "Manage footer content",
    P.MANAGE_HEADER: "Manage header content",
    P.MANAGE_DATABASE: "Manage database operations",
    P.MANAGE_MIGRATIONS: "Manage database migrations",
    P.MANAGE_SEEDS: "Manage database seeds",
    P.MANAGE_INDEXES: "Manage database indexes",
    P.MANAGE_FILES: "Manage uploaded files",
    P.MANAGE_IMAGES: "Manage images",
    P.MANAGE_DOCUMENTS: "Manage documents",
    P.MANAGE_MEDIA: "Manage media library",
    P.MANAGE_MESSAGES: "Manage messages",
    P.MANAGE_ANNOUNCEMENTS: "Manage announcements",
    P.MANAGE_FEEDBACK: "Manage user feedback",
    P.MANAGE_REVIEWS: "Manage product and seller reviews",
    P.MANAGE_LOCATIONS: "Manage locations",
    P.MANAGE_ZONES: "Manage delivery zones",
    P.MANAGE_DELIVERY_AREAS: "Manage delivery areas",
    P.MANAGE_WAREHOUSES: "Manage warehouses",
    P.MANAGE_QUALITY: "Manage quality control",
    P.MANAGE_INSPECTIONS: "Manage product inspections",
    P.MANAGE_COMPLAINTS: "Manage complaints",
    P.MANAGE_DISPUTES: "Manage disputes",
    P.MANAGE_LEGAL: "Manage legal documents",
    P.MANAGE_TERMS: "Manage terms of service",
    P.MANAGE_PRIVACY: "Manage privacy policy",
    P.MANAGE_COOKIES: "Manage cookie policy",
    P.MANAGE_PERFORMANCE: "Manage performance settings",
    P.MANAGE_CACHE: "Manage cache",
    P.MANAGE_CDN: "Manage CDN",
    P.MANAGE_MONITORING: "Manage monitoring",
    P.MANAGE_DEVELOPMENT: "Manage development tools",
    P.MANAGE_FEATURES: "Manage feature flags",
    P.MANAGE_EXPERIMENTS: "Manage experiments",
    P.MANAGE_BETA: "Manage beta programme",
    P.SUPER_ADMIN: "Full platform control",
    P.SYSTEM_ADMIN: "System level administration",
    P.PLATFORM_ADMIN: "Platform level administration",
})

del P

RoleLike = Union[AdminRole, str, None]
PermissionLike = Union[AdminPermission, str]


def _coerce_role(role: RoleLike) -> Optional[AdminRole]:
    if isinstance(role, AdminRole):
        return role
    try:
        return AdminRole(role)
    except ValueError:
        return None


def _coerce_permission(permission: PermissionLike) -> Optional[AdminPermission]:
    if isinstance(permission, AdminPermission):
        return permission
    try:
        return AdminPermission(permission)
    except ValueError:
        return None


def get_custom_permissions(user_id: Optional[str]) -> FrozenSet[AdminPermission]:
    """Per-admin permission overrides.

    Extension point with no storage behind it yet: always empty, and unioned
    with the role's permissions wherever a full permission set is reported.
    """
    return frozenset()


class RolePermissionTable:
    """Immutable role -> permission-set mapping with lookup helpers"""

    def __init__(
        self,
        role_permissions: Mapping[AdminRole, Iterable[AdminPermission]],
        groups: Mapping[str, Iterable[AdminPermission]] = PERMISSION_GROUPS
    ):
        self._roles: Mapping[AdminRole, FrozenSet[AdminPermission]] = MappingProxyType({
            AdminRole(role): frozenset(AdminPermission(p) for p in permissions)
            for role, permissions in role_permissions.items()
        })
        self._groups: Mapping[str, FrozenSet[AdminPermission]] = MappingProxyType({
            name: frozenset(permissions) for name, permissions in groups.items()
        })

    @classmethod
    def default(cls) -> "RolePermissionTable":
        """Build the platform's standard table"""
        role_permissions: Dict[AdminRole, FrozenSet[AdminPermission]] = {
            AdminRole.SUPER_ADMIN: frozenset(AdminPermission),
            AdminRole.MODERATOR: MODERATOR_PERMISSIONS,
        }
        for role, group_names in ROLE_GROUPS.items():
            role_permissions[role] = frozenset().union(
                *(PERMISSION_GROUPS[name] for name in group_names)
            )
        return cls(role_permissions)

    @property
    def roles(self) -> Mapping[AdminRole, FrozenSet[AdminPermission]]:
        return self._roles

    @property
    def groups(self) -> Mapping[str, FrozenSet[AdminPermission]]:
        return self._groups

    def get_user_permissions(self, role: RoleLike) -> FrozenSet[AdminPermission]:
        """Permissions held by ``role``; empty for a missing or unknown role"""
        admin_role = _coerce_role(role)
        if admin_role is None:
            if role is not None:
                logger.warning(f"Permission lookup for unknown admin role: {role!r}")
            return frozenset()
        return self._roles.get(admin_role, frozenset())

    def has_permission(self, role: RoleLike, permission: PermissionLike) -> bool:
        admin_permission = _coerce_permission(permission)
        if admin_permission is None:
            return False
        return admin_permission in self.get_user_permissions(role)

    def has_any_permission(self, role: RoleLike, permissions: Iterable[PermissionLike]) -> bool:
        return any(self.has_permission(role, permission) for permission in permissions)

    def has_all_permissions(self, role: RoleLike, permissions: Iterable[PermissionLike]) -> bool:
        return all(self.has_permission(role, permission) for permission in permissions)

    def get_user_permission_groups(self, role: RoleLike) -> Set[str]:
        """Names of the groups sharing at least one permission with ``role``"""
        permissions = self.get_user_permissions(role)
        return {name for name, members in self._groups.items() if members & permissions}

    def get_effective_permissions(self, role: RoleLike, user_id: Optional[str] = None) -> FrozenSet[AdminPermission]:
        return self.get_user_permissions(role) | get_custom_permissions(user_id)


DEFAULT_PERMISSION_TABLE = RolePermissionTable.default()


def get_permission_table() -> RolePermissionTable:
    """FastAPI dependency returning the process-wide table"""
    return DEFAULT_PERMISSION_TABLE


def has_permission(role: RoleLike, permission: PermissionLike) -> bool:
    return DEFAULT_PERMISSION_TABLE.has_permission(role, permission)


def has_any_permission(role: RoleLike, permissions: Iterable[PermissionLike]) -> bool:
    return DEFAULT_PERMISSION_TABLE.has_any_permission(role, permissions)


def has_all_permissions(role: RoleLike, permissions: Iterable[PermissionLike]) -> bool:
    return DEFAULT_PERMISSION_TABLE.has_all_permissions(role, permissions)


def get_user_permissions(role: RoleLike) -> FrozenSet[AdminPermission]:
    return DEFAULT_PERMISSION_TABLE.get_user_permissions(role)


def get_user_permission_groups(role: RoleLike) -> Set[str]:
    return DEFAULT_PERMISSION_TABLE.get_user_permission_groups(role)
