"""Deterministic identifiers for projected entities.

Brand and membership ids are derived with UUIDv5 so the same business key
maps to the same id in every process and on every run.
"""

import uuid

ENTITY_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")


def brand_id_for(brand_name: str) -> uuid.UUID:
    """Return the stable brand id for a brand name."""
    return uuid.uuid5(ENTITY_NAMESPACE, brand_name)


def membership_id_for(user_id: uuid.UUID, program_id: str) -> uuid.UUID:
    """Return the stable membership id for a (user, program) pair."""
    return uuid.uuid5(ENTITY_NAMESPACE, f"{user_id}-{program_id}")
