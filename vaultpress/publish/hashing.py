"""Git object hashing for local content."""

from __future__ import annotations

import hashlib
from typing import Union

EMPTY_BLOB_SHA = "e69de29bb2d1d6434b8b29ae775ad8c2e48c5391"


def git_blob_sha1(content: Union[str, bytes]) -> str:
    """Return the SHA-1 git assigns to a blob holding ``content``.

    Text is encoded as UTF-8 first. The digest covers the ``blob <size>\\0``
    header followed by the raw bytes, so it can be compared directly with the
    ``sha`` values GitHub reports for tree entries.
    """

    data = content.encode("utf-8") if isinstance(content, str) else bytes(content)
    hasher = hashlib.sha1()
    hasher.update(b"blob %d\0" % len(data))
    hasher.update(data)
    return hasher.hexdigest()


__all__ = ["EMPTY_BLOB_SHA", "git_blob_sha1"]
