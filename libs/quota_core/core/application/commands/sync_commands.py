from dataclasses import dataclass, field

from quota_core.core.application.cqrs import CommandDTO

SYNC_TYPES = ("manual", "scheduled", "onboarding")


@dataclass(frozen=True, slots=True)
class RunQuotaSyncCommand(CommandDTO):
    """
    Reconcile quotas for one clinic and PMS. `patients` / `appointments`
    carry freshly fetched PMS records to ingest first; when both are empty
    the reconciliation runs over what is already stored.
    """
    clinic_id: str
    pms_type: str
    sync_type: str = "manual"
    patients: list[dict] = field(default_factory=list)
    appointments: list[dict] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class IngestPMSRecordsCommand(CommandDTO):
    clinic_id: str
    pms_type: str
    patients: list[dict] = field(default_factory=list)
    appointments: list[dict] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class SetSyncEnabledCommand(CommandDTO):
    clinic_id: str
    pms_type: str
    is_enabled: bool
