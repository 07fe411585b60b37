"""
File fingerprints used as resumption keys.
"""

from ..domain.files import LocalFile


def fingerprint(file: LocalFile) -> str:
    """
    Derive the local resumption key of a file.

    Pure function of name, size and modification time, plus the head digest
    when the handle carries one. Files that agree on every input share a
    fingerprint; the reconciler's server cross-check keeps such collisions
    from assembling a corrupt object.
    """
    key = f"{file.name}-{file.size}-{file.modified_ms}"
    if file.head_digest:
        key = f"{key}-{file.head_digest}"
    return key
