from dataclasses import dataclass


@dataclass(frozen=True)
class GetSyncLogQuery:
    id: str
    clinic_id: str

@dataclass(frozen=True)
class ListSyncLogsQuery:
    clinic_id: str
    limit: int = 10

@dataclass(frozen=True)
class GetSyncControlQuery:
    clinic_id: str
    pms_type: str
