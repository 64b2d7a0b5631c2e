from __future__ import annotations

from hirelane.services.repository import RepositoryConflictError


def write_version(policy: str, current_version: int, expected_version: int | None, *, entity: str) -> int | None:
    """Version to compare-and-set on write, or ``None`` when writes are unconditional.

    Under the ``versioned`` policy the write is conditioned on the version that was read, so a
    concurrent writer that got there first turns this write into a ``stale_write`` conflict. A
    caller-supplied ``expected_version`` that already differs fails fast.
    """
    if policy == "last_write_wins":
        return None
    if expected_version is not None and expected_version != current_version:
        raise RepositoryConflictError(
            f"{entity} version {expected_version} is stale (current is {current_version})",
            reason="stale_write",
        )
    return current_version
