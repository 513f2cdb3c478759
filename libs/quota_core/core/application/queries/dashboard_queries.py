from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class GetQuotaDashboardQuery:
    clinic_id: str
