"""IMAP constants and configuration values."""


class IMAPResponse:
    """Standard IMAP response codes."""

    OK = "OK"


class Timeouts:
    """Timeout values for IMAP operations (in seconds)."""

    IMAP_LOGOUT = 5.0  # Cleanup of a half-open session

