"""
Application-wide constants.
Centralizes magic numbers and configuration values.
"""

# Validation limits
MAX_MESSAGE_LENGTH = 1000

# Display formatting
EVENT_ID_DISPLAY_LENGTH = 8  # Length of event ID to show in listings

# Store
DEFAULT_DOCUMENT_KEY = "events"
GITHUB_COMMIT_MESSAGE = "Update events"
STORE_REQUEST_TIMEOUT = 15.0  # seconds
