from .__main__ import EXIT_DEFECTS, EXIT_FATAL, EXIT_SUCCESS, main

__all__ = [
    "EXIT_DEFECTS",
    "EXIT_FATAL",
    "EXIT_SUCCESS",
    "main",
]
