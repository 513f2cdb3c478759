from __future__ import annotations

import structlog

from quota_core.core.application.commands.clinic_commands import UpdateClinicSettingsCommand
from quota_core.core.application.cqrs import CommandHandler
from quota_core.core.domain.entities.quota_policy_entity import TagSet
from quota_core.core.domain.events.events import ClinicSettingsUpdatedEvent
from quota_core.core.domain.events.exceptions import (
    ClinicNotFoundError,
    InvalidClinicSettingsError,
)
from quota_core.core.domain.repositories.clinic_repository import ClinicRepository

logger = structlog.get_logger(__name__)


class UpdateClinicSettingsHandler(CommandHandler[UpdateClinicSettingsCommand]):
    """
    Updates the clinic's WC/EPC tags and quota overrides. Overlapping tags
    are accepted (they classify as WC) but surfaced on the returned event.
    """

    def __init__(self, clinic_repo: ClinicRepository):
        self.repo = clinic_repo

    def handle(self, cmd: UpdateClinicSettingsCommand) -> ClinicSettingsUpdatedEvent:
        clinic = self.repo.find_by_id(cmd.clinic_id)
        if clinic is None:
            raise ClinicNotFoundError(f"Clinic {cmd.clinic_id} not found")

        tags = TagSet.from_lists(
            clinic.wc_tags if cmd.wc_tags is None else cmd.wc_tags,
            clinic.epc_tags if cmd.epc_tags is None else cmd.epc_tags,
        )
        if cmd.wc_tags is not None and not tags.wc_tags:
            raise InvalidClinicSettingsError("At least one WC tag is required")
        if cmd.epc_tags is not None and not tags.epc_tags:
            raise InvalidClinicSettingsError("At least one EPC tag is required")
        for name, value in (("wc_quota", cmd.wc_quota), ("epc_quota", cmd.epc_quota)):
            if value is not None and value < 1:
                raise InvalidClinicSettingsError(f"{name} must be a positive number of sessions")

        clinic.wc_tags = list(tags.wc_tags)
        clinic.epc_tags = list(tags.epc_tags)
        if cmd.clear_quota_overrides:
            clinic.wc_quota = clinic.epc_quota = None
        if cmd.wc_quota is not None:
            clinic.wc_quota = cmd.wc_quota
        if cmd.epc_quota is not None:
            clinic.epc_quota = cmd.epc_quota
        self.repo.save(clinic)

        overlap = tuple(sorted(tags.overlap()))
        if overlap:
            logger.warning("clinic_settings.tag_overlap", clinic_id=str(clinic.id), tags=list(overlap))
        return ClinicSettingsUpdatedEvent(
            clinic_id=clinic.id,
            wc_tags=tags.wc_tags,
            epc_tags=tags.epc_tags,
            overlapping_tags=overlap,
        )
