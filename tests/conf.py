"""
Data definitions used for unit testing
"""

from typing import Optional

# Set the database URL to be used (default: None) which will be
# passed to SQLAlchemy, so make sure it's understood by SQLAlchemy
# (using None enables the sqlite database instead, see below)
# Note: The tables will be created but never dropped by the unittests!
DATABASE_URL: Optional[str] = None

# Default file format for halfway persistent sqlite database files,
# which will be removed after the unittests have completed (the
# placeholders will be filled with the PID and a random nonce)
DATABASE_DEFAULT_FILE_FORMAT: str = "/tmp/unittest_crud_{}_{}.db"

# Default database URL when DATABASE_URL above is not set (the
# placeholder will be filled with the database file location from above)
DATABASE_URL_FORMAT: str = "sqlite:///{}"

# Fallback database URL (in-memory sqlite database) when the persistent sqlite
# file can't be written, which might be the case when the target is not writeable
DATABASE_FALLBACK_URL: str = "sqlite://"

# Enable or disable echoing of commands issued by SQLAlchemy (default: False)
SQLALCHEMY_ECHOING: bool = False

# Public base URL of the API server used to build links in responses
PUBLIC_BASE_URL: str = "http://api.example.com"
