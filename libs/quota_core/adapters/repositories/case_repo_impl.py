from __future__ import annotations

from dataclasses import fields

from django.db import transaction
from django.db.models import Count, F, Q

from quota_core.core.application.cqrs import PagedResult
from quota_core.core.domain.entities.case_entity import CaseEntity
from quota_core.core.domain.repositories.case_repository import CaseRepository
from plugins.django_interface.models import Case as CaseModel


_KEY = ("clinic_id", "patient_id", "pms_type")
_IMMUTABLE = {"id", "created_at", "updated_at", *_KEY}
_DERIVED = tuple(f.name for f in fields(CaseEntity) if f.name not in _IMMUTABLE)

ACTION_NEEDED_REMAINING = 2


class CaseRepoImpl(CaseRepository):
    """
    Case store on the Django ORM.

    `upsert` is keyed on the (clinic, patient, pms_type) unique constraint.
    `update_or_create` locks the row and, when a concurrent writer inserts
    the same key first, catches the losing insert and applies the values as
    an update, so the entity id of the loser is discarded.
    """

    @transaction.atomic
    def upsert(self, case: CaseEntity) -> tuple[CaseEntity, bool]:
        values = {name: getattr(case, name) for name in _DERIVED}
        existing = (
            CaseModel.objects.select_for_update()
            .filter(clinic_id=case.clinic_id, patient_id=case.patient_id, pms_type=case.pms_type)
            .values("status", "last_status_change")
            .first()
        )
        if existing and existing["status"] == case.status:
            # keep the timestamp of the last real transition
            values["last_status_change"] = existing["last_status_change"]

        model, created = CaseModel.objects.update_or_create(
            clinic_id=case.clinic_id,
            patient_id=case.patient_id,
            pms_type=case.pms_type,
            defaults=values,
            create_defaults={"id": case.id, **values},
        )
        return CaseEntity.from_model(model), created

    def find_by_id(self, case_id: str) -> CaseEntity | None:
        model = CaseModel.objects.filter(id=case_id).first()
        return CaseEntity.from_model(model) if model else None

    @transaction.atomic
    def save(self, case: CaseEntity) -> CaseEntity:
        CaseModel.objects.filter(id=case.id).update(**{name: getattr(case, name) for name in _DERIVED})
        return CaseEntity.from_model(CaseModel.objects.get(id=case.id))

    def list(self, filtros: dict, page: int, page_size: int) -> PagedResult[CaseEntity]:
        filtros = dict(filtros)
        search = (filtros.pop("search", "") or "").strip()
        include_archived = filtros.pop("include_archived", False)

        qs = CaseModel.objects.filter(**filtros)
        if not include_archived and "status" not in filtros:
            qs = qs.exclude(status=CaseModel.Status.ARCHIVED)
        if search:
            qs = qs.filter(
                Q(patient_first_name__icontains=search)
                | Q(patient_last_name__icontains=search)
                | Q(case_number__iexact=search)
            )

        total = qs.count()
        offset = (page - 1) * page_size
        page_qs = qs.order_by("remaining_sessions", "patient_last_name", "id")[offset : offset + page_size]
        return PagedResult(
            items=[CaseEntity.from_model(m) for m in page_qs],
            total=total,
            page=page,
            page_size=page_size,
        )

    def summary(self, clinic_id: str) -> dict:
        qs = CaseModel.objects.filter(clinic_id=clinic_id)
        open_qs = qs.exclude(status=CaseModel.Status.ARCHIVED)
        by_status = dict.fromkeys(CaseModel.Status.values, 0)
        by_status.update(
            (row["status"], row["n"])
            for row in qs.values("status").annotate(n=Count("id")).order_by()
        )
        by_program = {
            row["program_type"]: row["n"]
            for row in open_qs.values("program_type").annotate(n=Count("id")).order_by()
        }
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "by_program": by_program,
            "action_needed": open_qs.filter(remaining_sessions__lte=ACTION_NEEDED_REMAINING).count(),
            "overdue": open_qs.filter(sessions_used__gt=F("quota")).count(),
        }
