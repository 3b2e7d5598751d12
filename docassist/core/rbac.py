import enum
from typing import FrozenSet, Optional, Union


class AppRole(str, enum.Enum):
    admin = "admin"
    hr = "hr"
    developer = "developer"


class DocumentCategory(str, enum.Enum):
    hr = "hr"
    technical = "technical"
    general = "general"


ROLE_CATEGORIES = {
    AppRole.admin: frozenset({DocumentCategory.hr, DocumentCategory.technical, DocumentCategory.general}),
    AppRole.hr: frozenset({DocumentCategory.hr, DocumentCategory.general}),
    AppRole.developer: frozenset({DocumentCategory.technical, DocumentCategory.general}),
}

DEFAULT_CATEGORIES = frozenset({DocumentCategory.general})


def parse_role(value: Union[str, AppRole, None]) -> Optional[AppRole]:
    """Return the matching role, or None for anything unassigned or unknown."""
    if value is None:
        return None
    try:
        return AppRole(value)
    except ValueError:
        return None


def allowed_categories(role: Union[str, AppRole, None]) -> FrozenSet[DocumentCategory]:
    """Categories a role may retrieve. Unassigned roles get the most restrictive set."""
    parsed = parse_role(role)
    if parsed is None:
        return DEFAULT_CATEGORIES
    return ROLE_CATEGORIES[parsed]
