"""
Funding-scheme value objects shared by the reconciliation pipeline.

`TagSet` holds the clinic's WC/EPC appointment-type tags; `QuotaPolicy`
holds session quotas, system defaults first and clinic overrides on top.
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, replace
from enum import Enum

PRIVATE_PROGRAM = "Private"


class FundingScheme(str, Enum):
    WC = "WC"
    EPC = "EPC"

    def __str__(self) -> str:
        return self.value


def normalise_tag(value: str | None) -> str:
    """Collapse inner whitespace and case-fold, so ' wc  Initial ' == 'WC initial'."""
    if not value:
        return ""
    return " ".join(str(value).split()).casefold()


def _clean_tags(raw: str | Iterable[str] | None) -> tuple[str, ...]:
    if raw is None:
        return ()
    items = raw.split(",") if isinstance(raw, str) else raw
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        tag = " ".join(str(item).split())
        key = tag.casefold()
        if not tag or key in seen:
            continue
        seen.add(key)
        out.append(tag)
    return tuple(out)


@dataclass(frozen=True, slots=True)
class TagSet:
    wc_tags: tuple[str, ...]
    epc_tags: tuple[str, ...]

    @classmethod
    def from_lists(
        cls,
        wc_tags: str | Iterable[str] | None,
        epc_tags: str | Iterable[str] | None,
    ) -> TagSet:
        """Accepts lists or comma separated strings; blanks and duplicates are dropped."""
        return cls(wc_tags=_clean_tags(wc_tags), epc_tags=_clean_tags(epc_tags))

    def keys_for(self, scheme: FundingScheme) -> frozenset[str]:
        tags = self.wc_tags if scheme is FundingScheme.WC else self.epc_tags
        return frozenset(normalise_tag(t) for t in tags)

    def overlap(self) -> set[str]:
        """Normalised tags present in both schemes (these classify as WC)."""
        return set(self.keys_for(FundingScheme.WC) & self.keys_for(FundingScheme.EPC))

    def is_empty(self) -> bool:
        return not self.wc_tags and not self.epc_tags


@dataclass(frozen=True, slots=True)
class QuotaPolicy:
    wc_quota: int = 8
    epc_quota: int = 5

    def with_overrides(
        self,
        wc_quota: int | None = None,
        epc_quota: int | None = None,
    ) -> QuotaPolicy:
        changes: dict[str, int] = {}
        if wc_quota is not None:
            changes["wc_quota"] = wc_quota
        if epc_quota is not None:
            changes["epc_quota"] = epc_quota
        return replace(self, **changes) if changes else self

    def for_clinic(self, clinic) -> QuotaPolicy:
        return self.with_overrides(clinic.wc_quota, clinic.epc_quota)

    def quota_for(self, scheme: FundingScheme) -> int:
        return self.wc_quota if scheme is FundingScheme.WC else self.epc_quota
