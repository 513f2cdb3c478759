"""
Labels appointments with the funding scheme they are billed against.

Matching is exact after trimming and case-folding both sides: a clinic tag
"WC Initial" matches "wc initial" and " WC  Initial", never "WC Initial Long".
WC is checked before EPC, so a tag configured in both lists classifies as WC.
"""
from __future__ import annotations

from quota_core.core.domain.entities.quota_policy_entity import (
    FundingScheme,
    TagSet,
    normalise_tag,
)


class AppointmentClassifier:
    """Pre-normalises a clinic's tags once so classifying a whole sync stays cheap."""

    def __init__(self, tags: TagSet) -> None:
        self.tags = tags
        self._wc = tags.keys_for(FundingScheme.WC)
        self._epc = tags.keys_for(FundingScheme.EPC)

    def classify(self, appointment_type: str | None) -> FundingScheme | None:
        key = normalise_tag(appointment_type)
        if not key:
            return None
        if key in self._wc:
            return FundingScheme.WC
        if key in self._epc:
            return FundingScheme.EPC
        return None


def classify_appointment(appointment_type: str | None, tags: TagSet) -> FundingScheme | None:
    return AppointmentClassifier(tags).classify(appointment_type)
