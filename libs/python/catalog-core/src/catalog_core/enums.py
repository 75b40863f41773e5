"""Domain enums for catalog governance."""

from enum import StrEnum


class PermissionKind(StrEnum):
    """Named capabilities a warehouse role may hold inside the catalog."""

    APP_ACCESS = "APP_ACCESS"
    CREATE_REQUESTS = "CREATE_REQUESTS"
    APPROVE_GLOSSARY = "APPROVE_GLOSSARY"
    APPROVE_DATA_ACCESS = "APPROVE_DATA_ACCESS"
    MANAGE_ROLES = "MANAGE_ROLES"


class ChangeRequestType(StrEnum):
    """Kinds of metadata edit routed through review."""

    DESCRIPTION = "DESCRIPTION"
    TAG_ADD = "TAG_ADD"
    TAG_REMOVE = "TAG_REMOVE"
    ATTRIBUTE_CREATE = "ATTRIBUTE_CREATE"
    ATTRIBUTE_EDIT = "ATTRIBUTE_EDIT"
    ENUMERATION_ADD = "ENUMERATION_ADD"
    ENUMERATION_EDIT = "ENUMERATION_EDIT"
    COLUMN_DESCRIPTION = "COLUMN_DESCRIPTION"


class ChangeRequestStatus(StrEnum):
    PENDING = "pending"
    MORE_INFO_NEEDED = "more_info_needed"
    APPROVED = "approved"
    DENIED = "denied"


class AccessRequestStatus(StrEnum):
    PENDING = "pending"
    PENDING_INFO = "pending_info"
    APPROVED = "approved"
    DENIED = "denied"


class AccessType(StrEnum):
    """Grantee kind for a data access grant."""

    USER = "USER"
    ROLE = "ROLE"


class ProvisioningAction(StrEnum):
    GRANT = "grant"
    REVOKE = "revoke"


ATTRIBUTE_REQUEST_TYPES = frozenset(
    {
        ChangeRequestType.ATTRIBUTE_CREATE,
        ChangeRequestType.ATTRIBUTE_EDIT,
        ChangeRequestType.ENUMERATION_ADD,
        ChangeRequestType.ENUMERATION_EDIT,
    }
)

# Listing order shared by every change-request view.
CHANGE_REQUEST_STATUS_RANK: dict[ChangeRequestStatus, int] = {
    ChangeRequestStatus.MORE_INFO_NEEDED: 0,
    ChangeRequestStatus.PENDING: 1,
    ChangeRequestStatus.APPROVED: 2,
    ChangeRequestStatus.DENIED: 3,
}
