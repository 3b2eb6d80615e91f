"""Root conftest — shared test configuration."""

import os

# Cheap bcrypt and no stray ./data directory for anything that reads env settings
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DATA_DIR", "test-data")
os.environ.setdefault("LOG_FORMAT", "text")
