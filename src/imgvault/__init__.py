"""
imgvault - Multi-user, content-addressed image store

An HTTP service where users log in, upload images and later fetch or delete
only the images they own:
- Argon2id password hashing and signed, expiring session tokens
- SHA-256 content addressing for deduplication
- EXIF GPS extraction into decimal degrees
- Ownership-scoped metadata in DuckDB, blobs on the local file system
"""

__version__ = "0.1.0"
__author__ = "imgvault"
__description__ = "Multi-user, content-addressed image store"
