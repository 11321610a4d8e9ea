"""
Content Addressing
==================
Content hashes name objects in every store; checksums verify their bytes.
"""

import hashlib

CHUNK_SIZE = 65536  # 64KB for memory-efficient hashing

DEFAULT_PREFIX = 'cas'


def _digest(stream, algorithm) -> str:
    for chunk in iter(lambda: stream.read(CHUNK_SIZE), b''):
        algorithm.update(chunk)
    return algorithm.hexdigest()


def compute_hash(file_obj) -> str:
    """
    Compute the SHA-256 content hash of a file.

    Uses chunked reading for memory efficiency.
    Resets the file pointer after hashing.

    Args:
        file_obj: Django UploadedFile or seekable file-like object

    Returns:
        str: Hexadecimal SHA-256 hash
    """
    content_hash = _digest(file_obj, hashlib.sha256())
    file_obj.seek(0)  # Reset for subsequent operations
    return content_hash


def compute_checksum(stream) -> str:
    """
    Compute the MD5 integrity checksum of a byte stream.

    The stream is consumed and not rewound, so non-seekable
    bodies (e.g. S3 responses) are accepted.
    """
    return _digest(stream, hashlib.md5())


def content_path(content_hash: str, prefix: str = DEFAULT_PREFIX) -> str:
    """
    Storage key for a content hash.
    Path structure: {prefix}/{hash[0:2]}/{hash[2:4]}/{hash}
    """
    path = f"{content_hash[:2]}/{content_hash[2:4]}/{content_hash}"
    return f"{prefix}/{path}" if prefix else path
