"""Session and transcript storage."""
