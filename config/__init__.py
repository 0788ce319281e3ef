"""Configuration settings and constants for passwords101.

`config.settings` is the single source of the values; this package
re-exports them so application code can write
`from config import PASSWORD_ITERATIONS`.
"""

from .settings import (
	INNER_ITERATIONS, INNER_KEY_BITS, PASSWORD_ITERATIONS, PASSWORD_BITS,
	REFERENCE_CODE_SITE, REFERENCE_CODE_ITERATIONS, REFERENCE_CODE_BITS,
	NO_PASSWORD_PLACEHOLDER, REFERENCE_CODE_DELAY,
	IGNORE_MAX_LENGTH, DEFAULT_SPECIAL_CHAR, BUSY_TEXT,
	STORE_BACKEND, DEFAULT_STORE_PATH, LOG_LEVEL, LOG_FILE,
)
from .settings import __all__
