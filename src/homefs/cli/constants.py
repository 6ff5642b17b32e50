"""Constants for CLI module."""


class ExitCodes:
    """Process exit codes for homefs commands."""

    SUCCESS = 0
    GENERAL_ERROR = 1  # configuration problem or failed tool call
    USAGE_ERROR = 2  # malformed arguments or unknown tool
