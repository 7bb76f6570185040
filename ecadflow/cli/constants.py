"""Exit codes shared by CLI commands."""

SYSTEM_EXIT_CODE = 1
CONFIG_EXIT_CODE = 2
DATA_EXIT_CODE = 3
OUTPUT_EXIT_CODE = 4

__all__ = [
    "CONFIG_EXIT_CODE",
    "DATA_EXIT_CODE",
    "OUTPUT_EXIT_CODE",
    "SYSTEM_EXIT_CODE",
]
