from __future__ import annotations

from collections.abc import Iterable


def merge_tags(fetched: Iterable[str], owner_tags: Iterable[str] = ()) -> list[str]:
    """Fetched tags then owner tags, exact duplicates dropped (first seen wins).

    Fetched tags are kept verbatim; owner tags are stripped and blanks dropped.
    """
    owner = [tag.strip() for tag in owner_tags or ()]
    merged: list[str] = []
    for tag in [*(fetched or ()), *filter(None, owner)]:
        if tag not in merged:
            merged.append(tag)
    return merged
