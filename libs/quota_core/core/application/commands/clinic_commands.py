from dataclasses import dataclass

from quota_core.core.application.cqrs import CommandDTO


@dataclass(frozen=True, slots=True)
class UpdateClinicSettingsCommand(CommandDTO):
    """None leaves a field unchanged; `clear_quota_overrides` falls back to system quotas."""
    clinic_id: str
    wc_tags: list[str] | None = None
    epc_tags: list[str] | None = None
    wc_quota: int | None = None
    epc_quota: int | None = None
    clear_quota_overrides: bool = False
