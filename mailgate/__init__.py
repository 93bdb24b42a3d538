"""mailgate - authenticated IMAP connection helper and legacy RSA password encryption."""

__version__ = "0.1.0"
