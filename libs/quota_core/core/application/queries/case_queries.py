from dataclasses import dataclass

from quota_core.core.application.cqrs import PaginatedQueryDTO


@dataclass(frozen=True)
class GetCaseQuery:
    id: str
    clinic_id: str

class ListCasesQuery(PaginatedQueryDTO[dict]):
    pass

class ListPatientsQuery(PaginatedQueryDTO[dict]):
    pass
