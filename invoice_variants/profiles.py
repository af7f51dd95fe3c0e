from __future__ import annotations

from typing import NamedTuple, Optional, Sequence

from invoice_variants.models import BuyerProfile


class ProfileAssignment(NamedTuple):
    buyer_profile: Optional[BuyerProfile]
    logo: Optional[str]


def _round_robin(pool: Sequence, variant_index: int):
    if not pool:
        return None
    return pool[variant_index % len(pool)]


def assign(
    variant_index: int,
    buyer_profiles: Sequence[BuyerProfile],
    logos: Sequence[str],
) -> ProfileAssignment:
    """Round-robin over the pools; no randomness, so the spread is reproducible."""
    return ProfileAssignment(
        buyer_profile=_round_robin(buyer_profiles, variant_index),
        logo=_round_robin(logos, variant_index),
    )
