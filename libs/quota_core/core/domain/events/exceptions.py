class QuotaSyncError(Exception):
    """Base class for every error raised by the quota pipeline."""
    pass

class UpstreamFetchError(QuotaSyncError):
    """
    Patients or appointments could not be read for a clinic.
    Fatal for the sync run: the sync log is marked as failed.
    """
    pass

class ClinicNotFoundError(QuotaSyncError):
    pass

class CaseNotFoundError(QuotaSyncError):
    """The case does not exist or belongs to another clinic."""
    pass

class InvalidCaseActionError(QuotaSyncError):
    """Unknown case action or data that violates a case invariant (e.g. quota below sessions used)."""
    pass

class InvalidClinicSettingsError(QuotaSyncError):
    pass

class SyncLogNotFoundError(QuotaSyncError):
    pass
