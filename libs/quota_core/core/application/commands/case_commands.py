from dataclasses import dataclass, field

from quota_core.core.application.cqrs import CommandDTO

CASE_ACTIONS = (
    "update_quota",
    "move_to_pending",
    "move_to_active",
    "archive_case",
    "update_priority",
    "update_next_visit",
)


@dataclass(frozen=True, slots=True)
class UpdateCaseCommand(CommandDTO):
    case_id: str
    clinic_id: str
    action: str
    data: dict = field(default_factory=dict)
