"""Global constants for the flashplan application."""

# Collections
USERS_COLLECTION = "users"
USER_GROUPS_COLLECTION = "groups"
GROUPS_COLLECTION = "groups"
MEMBERS_COLLECTION = "members"
AVAILABILITY_COLLECTION = "availability"
PLANS_COLLECTION = "plans"
VOTES_COLLECTION = "votes"

# Roles stored on member records
ROLE_OWNER = "owner"
ROLE_ADMIN = "admin"
ROLE_MEMBER = "member"
ROLE_PENDING = "pending"

# Invite codes
INVITE_CODE_LENGTH = 6
INVITE_CODE_ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"
INVITE_CODE_ATTEMPTS = 3

# Query limits
GROUP_LIST_LIMIT = 50
PLAN_LIST_LIMIT = 50
TOP_DATES_LIMIT = 5

# Display defaults
DEFAULT_DISPLAY_NAME = "Someone"
SESSION_DISPLAY_NAME = "You"

# Calendar dates are stored as ISO strings
DATE_FORMAT = "%Y-%m-%d"

# Group theme keys
THEME_KEYS = ("ocean", "sunset", "forest", "grape", "default")
DEFAULT_THEME_KEY = "default"

DEFAULT_APP_BASE_URL = "https://flashplan.example"
