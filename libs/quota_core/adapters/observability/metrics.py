from prometheus_client import Counter, Histogram

from quota_core.core.domain.events.events import (
    CaseAlertRaisedEvent,
    QuotaSyncCompletedEvent,
    QuotaSyncFailedEvent,
)
from quota_core.core.domain.services.event_dispatcher import EventDispatcher

# Registered on the default registry so django_prometheus' /metrics exports them.

QUOTA_SYNC_RUNS = Counter(
    "quota_sync_runs_total",
    "Quota reconciliation runs",
    ["sync_type", "status"],
)

QUOTA_SYNC_DURATION = Histogram(
    "quota_sync_duration_seconds",
    "Wall time of a quota reconciliation run",
    ["sync_type"],
)

CASES_UPSERTED = Counter(
    "quota_cases_upserted_total",
    "Cases written by reconciliation",
    ["outcome"],
)

SYNC_ISSUES = Counter(
    "quota_sync_issues_total",
    "Per-patient issues recorded during reconciliation",
)

CASE_ALERTS = Counter(
    "quota_case_alerts_total",
    "Cases that ended a sync in the critical state",
    ["program_type"],
)

HTTP_LATENCY = Histogram(
    "quota_api_request_seconds",
    "API view latency",
    ["view"],
)


def _on_sync_completed(evt: QuotaSyncCompletedEvent) -> None:
    QUOTA_SYNC_RUNS.labels(sync_type=evt.sync_type, status="completed").inc()
    CASES_UPSERTED.labels(outcome="created").inc(evt.cases_created)
    CASES_UPSERTED.labels(outcome="updated").inc(evt.cases_updated)
    SYNC_ISSUES.inc(evt.issues)


def _on_sync_failed(evt: QuotaSyncFailedEvent) -> None:
    QUOTA_SYNC_RUNS.labels(sync_type=evt.sync_type, status="failed").inc()


def _on_case_alert(evt: CaseAlertRaisedEvent) -> None:
    CASE_ALERTS.labels(program_type=evt.program_type).inc()


def subscribe_metrics(dispatcher: EventDispatcher) -> None:
    dispatcher.subscribe(QuotaSyncCompletedEvent, _on_sync_completed)
    dispatcher.subscribe(QuotaSyncFailedEvent, _on_sync_failed)
    dispatcher.subscribe(CaseAlertRaisedEvent, _on_case_alert)
