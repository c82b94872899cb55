"""
Roles and Governed Resources Configuration
This config defines the family roles, their display metadata and the resource
kinds that carry the ownership envelope (created_by, edit_mode, updated_by, updated_at).
The authorization rules themselves live in familyos.core.policy; this file only
describes what exists.
"""

# Governed resource kinds and the tables that back them
RESOURCE_KINDS = {
    "card": {
        "table": "cards",
        "route": "cards",
        "description": "Loyalty and membership cards"
    },
    "document": {
        "table": "documents",
        "route": "documents",
        "description": "Shared family documents"
    },
    "event": {
        "table": "events",
        "route": "events",
        "description": "Calendar events"
    },
    "list": {
        "table": "lists",
        "route": "lists",
        "description": "Shopping and todo lists"
    },
    "subscription": {
        "table": "subscriptions",
        "route": "subscriptions",
        "description": "Recurring subscriptions and their payers"
    },
    "note": {
        "table": "notes",
        "route": "notes",
        "description": "Family notes"
    }
}

# Role display metadata; rank is for comparisons and display only
ROLE_INFO = {
    "owner": {
        "label": "Owner",
        "description": "Full control over family and all resources",
        "icon": "👑",
        "rank": 3
    },
    "member": {
        "label": "Member",
        "description": "Can create and modify own resources and public resources",
        "icon": "👤",
        "rank": 2
    },
    "viewer": {
        "label": "Viewer",
        "description": "Can only view resources",
        "icon": "👁️",
        "rank": 1
    }
}

DEFAULT_JOIN_ROLE = "member"
CREATOR_ROLE = "owner"
DEFAULT_EDIT_MODE = "public"

# Group-level capabilities reserved to owners
OWNER_CAPABILITIES = {
    "manage_members": "Remove other members from the family",
    "change_roles": "Promote or demote family members",
    "manage_settings": "Rename the family or change its icon",
    "invite_members": "Share or rotate the invite code",
    "delete_group": "Delete the family and all of its data"
}


def get_resource_tables():
    """Return the table name of every governed resource kind, in declaration order."""
    return [config["table"] for config in RESOURCE_KINDS.values()]


def get_role_matrix():
    """
    Returns a dictionary describing every role for display purposes
    Format: {
        "roles": [
            {"name": "owner", "label": "Owner", "description": "...", "icon": "...", "rank": 3},
            ...
        ],
        "resources": [
            {"kind": "card", "table": "cards", "description": "..."},
            ...
        ],
        "owner_capabilities": {"manage_members": "...", ...}
    }
    """
    roles = []
    for role_name, info in sorted(ROLE_INFO.items(), key=lambda item: -item[1]["rank"]):
        roles.append({"name": role_name, **info})

    resources = []
    for kind, config in RESOURCE_KINDS.items():
        resources.append({
            "kind": kind,
            "table": config["table"],
            "description": config["description"]
        })

    return {
        "roles": roles,
        "resources": resources,
        "owner_capabilities": OWNER_CAPABILITIES
    }


ROLE_MATRIX = get_role_matrix()
