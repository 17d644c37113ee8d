"""
Database schema definitions for imgvault.

This module contains the DuckDB DDL for users and image records.
"""

USERS_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS users (
    username TEXT PRIMARY KEY,
    password_hash TEXT NOT NULL,
    created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
);
"""

# (hash, owner) is the record identity: the same bytes from two owners are two rows
IMAGES_TABLE_SCHEMA = """
CREATE TABLE IF NOT EXISTS images (
    hash TEXT NOT NULL,
    extension TEXT NOT NULL,
    owner TEXT NOT NULL REFERENCES users(username),
    image_name TEXT,
    longitude DOUBLE,
    latitude DOUBLE,
    created_at TIMESTAMP NOT NULL,
    modified_at TIMESTAMP NOT NULL,
    PRIMARY KEY (hash, owner)
);
"""

IMAGES_TABLE_INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_images_owner_created ON images(owner, created_at);",
]

ALL_SCHEMA_STATEMENTS = [USERS_TABLE_SCHEMA, IMAGES_TABLE_SCHEMA] + IMAGES_TABLE_INDEXES

REQUIRED_COLUMNS = {
    "users": {"username", "password_hash", "created_at"},
    "images": {
        "hash",
        "extension",
        "owner",
        "image_name",
        "longitude",
        "latitude",
        "created_at",
        "modified_at",
    },
}


def get_schema_statements() -> list[str]:
    """
    Get all database schema creation statements.

    Returns:
        List of SQL statements to create tables and indexes, in dependency order
    """
    return ALL_SCHEMA_STATEMENTS


def validate_schema_compatibility() -> bool:
    """
    Check that every column the models read is declared in the DDL.

    Returns:
        True if schema is compatible, False otherwise
    """
    ddl = {"users": USERS_TABLE_SCHEMA.lower(), "images": IMAGES_TABLE_SCHEMA.lower()}

    for table, columns in REQUIRED_COLUMNS.items():
        for column in columns:
            if column not in ddl[table]:
                return False

    return True
