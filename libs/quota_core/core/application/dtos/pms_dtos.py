from __future__ import annotations

from datetime import date, datetime

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

# ───────────────────────────────────────────────
# Inbound PMS records (Cliniko / Nookal / Halaxy)
# ───────────────────────────────────────────────
# Adapters hand over already-fetched records; field names follow the PMS
# camelCase payloads, snake_case is accepted as well.


def coerce_date(value) -> date | None:
    """Missing or unparseable dates become None instead of failing the record."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def coerce_datetime(value) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def _pms_id(value) -> str:
    text = "" if value is None else str(value).strip()
    if not text:
        raise ValueError("PMS id is required")
    return text


class PMSPatientDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "pms_patient_id", "patientId"))
    first_name: str = Field("", validation_alias=AliasChoices("firstName", "first_name"))
    last_name: str = Field("", validation_alias=AliasChoices("lastName", "last_name"))
    email: str | None = None
    phone: str | None = None
    date_of_birth: date | None = Field(None, validation_alias=AliasChoices("dateOfBirth", "date_of_birth"))
    physio_name: str | None = Field(None, validation_alias=AliasChoices("physioName", "physio_name"))
    last_modified: datetime | None = Field(None, validation_alias=AliasChoices("lastModified", "last_modified"))

    @field_validator("id", mode="before")
    @classmethod
    def clean_id(cls, v):
        return _pms_id(v)

    @field_validator("first_name", "last_name", mode="before")
    @classmethod
    def clean_name(cls, v):
        return "" if v is None else str(v).strip()

    @field_validator("date_of_birth", mode="before")
    @classmethod
    def parse_date_of_birth(cls, v):
        return coerce_date(v)

    @field_validator("last_modified", mode="before")
    @classmethod
    def parse_last_modified(cls, v):
        return coerce_datetime(v)


class PMSAppointmentDTO(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: str = Field(validation_alias=AliasChoices("id", "pms_appointment_id", "appointmentId"))
    patient_id: str = Field(validation_alias=AliasChoices("patientId", "patient_id", "pms_patient_id"))
    appointment_type: str | None = Field(
        None, validation_alias=AliasChoices("type", "appointmentType", "appointment_type")
    )
    status: str = "scheduled"
    appointment_date: date | None = Field(
        None, validation_alias=AliasChoices("date", "appointmentDate", "appointment_date")
    )
    practitioner_name: str | None = Field(
        None, validation_alias=AliasChoices("physioName", "practitionerName", "practitioner_name")
    )
    location_name: str | None = Field(
        None, validation_alias=AliasChoices("locationName", "location_name")
    )
    duration_minutes: int | None = Field(
        None, validation_alias=AliasChoices("durationMinutes", "duration_minutes")
    )

    @field_validator("id", "patient_id", mode="before")
    @classmethod
    def clean_ids(cls, v):
        return _pms_id(v)

    @field_validator("status", mode="before")
    @classmethod
    def normalise_status(cls, v):
        return (str(v).strip().lower() if v else "") or "scheduled"

    @field_validator("appointment_type", mode="before")
    @classmethod
    def clean_type(cls, v):
        if v is None:
            return None
        return str(v).strip() or None

    @field_validator("appointment_date", mode="before")
    @classmethod
    def parse_appointment_date(cls, v):
        return coerce_date(v)

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def parse_duration(cls, v):
        try:
            return int(v) if v not in (None, "") else None
        except (TypeError, ValueError):
            return None
