"""
utils/constants.py

Purpose: Centralized static content

- User-facing API messages
- Reusable enums and choice lists for profile fields
- Upload allow-lists

(Prevents hardcoding across the codebase)
"""

# ============================================================
# ACCOUNTS
# ============================================================

USER_TYPE_USER = "user"
USER_TYPE_ADMIN = "admin"

VERIFICATION_ACTIVE = "active"
VERIFICATION_INACTIVE = "inactive"

MIN_PASSWORD_LENGTH = 6

MSG_NO_TOKEN = "No authentication token, access denied"
MSG_TOKEN_INVALID = "Token is invalid or expired"
MSG_USER_NOT_FOUND = "User not found"
MSG_SESSION_INVALID = "Session expired or invalid"
MSG_ACCOUNT_NOT_VERIFIED = "Account not verified"
MSG_ALREADY_LOGGED_IN = "You are already logged in"
MSG_ADMIN_REQUIRED = "Admin access required"
MSG_INVALID_CREDENTIALS = "Invalid email or password"
MSG_EMAIL_TAKEN = "Email already registered"
MSG_USERNAME_TAKEN = "Username already taken"
MSG_PASSWORD_MISMATCH = "Passwords do not match"
MSG_PASSWORD_TOO_SHORT = f"Password must be at least {MIN_PASSWORD_LENGTH} characters long"
MSG_REGISTERED = "Registration successful. Please check your email to verify your account."
MSG_VERIFIED = "Email verified successfully. You can now log in."

# ============================================================
# CONNECTIONS
# ============================================================

CONNECTION_PENDING = "pending"
CONNECTION_ACCEPTED = "accepted"
CONNECTION_DECLINED = "declined"

DEFAULT_CONNECTION_PURPOSE = "general"

MSG_CONNECTION_NOT_FOUND = "Connection request not found or already processed"
MSG_CONNECTION_SELF = "Cannot send connection request to yourself"
MSG_CONNECTION_EXISTS = "Connection already exists"

# ============================================================
# NOTIFICATIONS
# ============================================================

NOTIFICATION_CONNECTION_REQUEST = "connection_request"
NOTIFICATION_MESSAGE = "message"
NOTIFICATION_SYSTEM = "system"
NOTIFICATION_OTHER = "other"
NOTIFICATION_TYPES = (
    NOTIFICATION_CONNECTION_REQUEST,
    NOTIFICATION_MESSAGE,
    NOTIFICATION_SYSTEM,
    NOTIFICATION_OTHER,
)

STATUS_READ = "read"
STATUS_UNREAD = "unread"

# ============================================================
# CHAT
# ============================================================

MESSAGE_TYPES = ("text", "image", "file", "emoji")
MESSAGE_PREVIEW_LENGTH = 100
DEFAULT_MESSAGE_LIMIT = 50
MAX_MESSAGE_LIMIT = 200
MIN_PUBLIC_KEY_LENGTH = 10

CHAT_ALLOWED_MIME_TYPES = {
    "image/jpeg": (".jpg", ".jpeg"),
    "image/png": (".png",),
    "image/gif": (".gif",),
    "image/webp": (".webp",),
    "application/pdf": (".pdf",),
    "application/msword": (".doc",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (".docx",),
    "application/vnd.ms-excel": (".xls",),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": (".xlsx",),
    "application/vnd.ms-powerpoint": (".ppt",),
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": (".pptx",),
    "text/plain": (".txt",),
    "text/csv": (".csv",),
}

DANGEROUS_EXTENSIONS = {
    ".exe", ".bat", ".cmd", ".sh", ".js", ".vbs", ".ps1", ".msi", ".dll",
    ".com", ".scr", ".jar", ".php", ".py", ".pl", ".rb",
}

# ============================================================
# PREFERENCES
# ============================================================

THEMES = ("light", "dark", "system")
DEFAULT_THEME = "light"

DEFAULT_LAYOUT_PREFERENCES = {
    "theme": DEFAULT_THEME,
    "rtl": False,
    "boxed": False,
    "container": False,
    "caption_show": True,
    "preset": "preset-5",
}

# ============================================================
# PROFILE CHOICES
# ============================================================

PROFILE_CHOICES = {
    "gender": ("Male", "Female", "Other"),
    "pronoun": ("He/Him", "She/Her", "They/Them", "Other"),
    "year_of_study": ("Freshman", "Sophomore", "Junior", "Senior", "Graduate", "Post Graduate"),
    "major_category": ("Engineering", "Business", "Arts", "Science", "Other"),
    "major_sub_category": (
        "AERO", "MECH", "SOFTWARE", "ENVIRONMENTAL", "ARCHITECTURAL", "CIVIL", "DESIGN",
        "CHEMICAL", "BIO_MED", "OTHER_ENGINEERING",
        "COMPUTER_SCIENCE", "HEALTH_SCIENCE", "DATA_SCIENCE", "OTHER_SCIENCE",
        "FINANCE", "MARKETING", "MANAGEMENT", "ACCOUNTING", "ECONOMICS", "OTHER_BUSINESS",
        "FINE_ARTS", "MUSIC", "THEATER", "OTHER_ARTS",
        "CUSTOM_MAJOR", "CUSTOM_ENGINEERING", "CUSTOM_SCIENCE", "CUSTOM_BUSINESS",
        "CUSTOM_ARTS", "CUSTOM_OTHER",
    ),
}

# Free-text {value, custom} fields
PROFILE_OPEN_CHOICE_FIELDS = ("institution", "zip", "state", "city")

PROFILE_TEXT_FIELDS = ("full_name", "phone_number", "bio", "address", "major_type")
PROFILE_LIST_FIELDS = (
    "platforms", "urls", "technical_skills", "soft_skills",
    "my_interests", "interests_looking_in_others",
)
MAJOR_TYPES = ("technical", "non-technical")

# Fields never returned to clients
PRIVATE_USER_FIELDS = (
    "password",
    "session_id",
    "verification_token",
    "reset_password_token",
    "reset_password_expires",
)

PUBLIC_LIST_LIMIT = 50
MATCH_LIMIT = 20
SEARCH_MIN_LENGTH = 2
