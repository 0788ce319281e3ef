"""Project configuration settings.

Derivation parameters are part of the password format shared with the
browser clients; changing any of them changes every generated password.
"""

from pathlib import Path
import os

# Password derivation
INNER_ITERATIONS = 1
INNER_KEY_BITS = 256
PASSWORD_ITERATIONS = 50_000
PASSWORD_BITS = 96  # 16 base64 characters

# Reference code
REFERENCE_CODE_SITE = "referenceCode"
REFERENCE_CODE_ITERATIONS = 10
REFERENCE_CODE_BITS = 12
NO_PASSWORD_PLACEHOLDER = "-no password yet-"
REFERENCE_CODE_DELAY = 0.5  # seconds of inactivity

# Composition
IGNORE_MAX_LENGTH = -1
DEFAULT_SPECIAL_CHAR = "!"
BUSY_TEXT = "Generating..."

# Preference store
STORE_BACKEND = os.environ.get("PASSWORDS101_STORE", "file")
DEFAULT_STORE_PATH = Path(os.environ.get("PASSWORDS101_STORE_PATH", "passwords101_data/settings.json"))

# Logging
LOG_LEVEL = os.environ.get("PASSWORDS101_LOG_LEVEL", "WARNING")
LOG_FILE = os.environ.get("PASSWORDS101_LOG_FILE")

__all__ = [
	'INNER_ITERATIONS','INNER_KEY_BITS','PASSWORD_ITERATIONS','PASSWORD_BITS',
	'REFERENCE_CODE_SITE','REFERENCE_CODE_ITERATIONS','REFERENCE_CODE_BITS','NO_PASSWORD_PLACEHOLDER','REFERENCE_CODE_DELAY',
	'IGNORE_MAX_LENGTH','DEFAULT_SPECIAL_CHAR','BUSY_TEXT',
	'STORE_BACKEND','DEFAULT_STORE_PATH','LOG_LEVEL','LOG_FILE'
]
