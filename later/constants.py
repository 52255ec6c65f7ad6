DEMO_USER_ID = "demo-user"
DEFAULT_TIMEZONE = "UTC"
MAX_ATTACHMENTS = 10
MAX_URL_CHARS = 2048
MAX_IMAGE_BYTES = 10 * 1024 * 1024
MAX_FILE_BYTES = 25 * 1024 * 1024
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

AUTO_ARCHIVE_POLICIES = {"never", "24h", "7d"}
REMINDER_STATUSES = {"upcoming", "archived"}
ARCHIVE_REASONS = {"completed", "auto", "manual"}
ATTACHMENT_KINDS = {"link", "image", "file", "text_snippet"}
METADATA_STATUSES = {"pending", "ready", "failed"}
SNOOZE_PRESETS = {"10m", "1h", "tomorrow"}
ARCHIVE_FILTERS = {"all", "completed", "auto", "manual"}
