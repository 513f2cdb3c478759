from datetime import timedelta

from dependency_injector import containers, providers

container = None

def setup_di_container_from_settings(settings):  # noqa: PLR0915
    """Builds the DI container once Django settings are loaded."""
    global container  # noqa: PLW0603
    if container is not None:
        return container

    # ------- IMPORTS THAT TOUCH DJANGO MODELS -------
    import structlog

    from quota_core.adapters.observability.metrics import subscribe_metrics
    from quota_core.adapters.repositories.appointment_repo_impl import AppointmentRepoImpl
    from quota_core.adapters.repositories.case_repo_impl import CaseRepoImpl
    from quota_core.adapters.repositories.clinic_repo_impl import ClinicRepoImpl
    from quota_core.adapters.repositories.patient_repo_impl import PatientRepoImpl
    from quota_core.adapters.repositories.sync_control_repo_impl import SyncControlRepoImpl
    from quota_core.adapters.repositories.sync_log_repo_impl import SyncLogRepoImpl

    # Commands
    from quota_core.core.application.commands.case_commands import UpdateCaseCommand
    from quota_core.core.application.commands.clinic_commands import UpdateClinicSettingsCommand
    from quota_core.core.application.commands.sync_commands import (
        IngestPMSRecordsCommand,
        RunQuotaSyncCommand,
        SetSyncEnabledCommand,
    )

    # CQRS buses
    from quota_core.core.application.cqrs import CommandBusImpl, QueryBusImpl

    # Handlers
    from quota_core.core.application.handlers.case_handlers import (
        GetCaseHandler,
        ListCasesHandler,
        ListPatientsHandler,
        UpdateCaseHandler,
    )
    from quota_core.core.application.handlers.clinic_handlers import UpdateClinicSettingsHandler
    from quota_core.core.application.handlers.dashboard_handlers import GetQuotaDashboardHandler
    from quota_core.core.application.handlers.sync_handlers import (
        IngestPMSRecordsHandler,
        RunQuotaSyncHandler,
        SetSyncEnabledHandler,
    )
    from quota_core.core.application.handlers.sync_query_handlers import (
        GetSyncControlHandler,
        GetSyncLogHandler,
        ListSyncLogsHandler,
    )

    # Queries
    from quota_core.core.application.queries.case_queries import (
        GetCaseQuery,
        ListCasesQuery,
        ListPatientsQuery,
    )
    from quota_core.core.application.queries.dashboard_queries import GetQuotaDashboardQuery
    from quota_core.core.application.queries.sync_queries import (
        GetSyncControlQuery,
        GetSyncLogQuery,
        ListSyncLogsQuery,
    )
    from quota_core.core.application.services.quota_sync_service import QuotaSyncService
    from quota_core.core.domain.entities.quota_policy_entity import QuotaPolicy, TagSet

    # ─────────────────────────────────────────────────────────
    # Container
    # ─────────────────────────────────────────────────────────
    class Container(containers.DeclarativeContainer):
        config = providers.Configuration()

        logger           = providers.Singleton(structlog.get_logger)
        event_dispatcher = providers.Singleton(
            'quota_core.core.domain.services.event_dispatcher.EventDispatcher'
        )

        # CQRS
        command_bus = providers.Singleton(CommandBusImpl, dispatcher=event_dispatcher)
        query_bus   = providers.Singleton(QueryBusImpl)

        # System defaults, layered with clinic overrides at sync time
        quota_policy = providers.Singleton(
            QuotaPolicy,
            wc_quota=config.quota.wc,
            epc_quota=config.quota.epc,
        )
        default_tags = providers.Singleton(
            TagSet.from_lists,
            config.quota.wc_tags,
            config.quota.epc_tags,
        )
        sync_interval = providers.Factory(timedelta, hours=config.quota.sync_interval_hours)

        # Repositories
        clinic_repo       = providers.Singleton(ClinicRepoImpl)
        patient_repo      = providers.Singleton(PatientRepoImpl)
        appointment_repo  = providers.Singleton(AppointmentRepoImpl)
        case_repo         = providers.Singleton(CaseRepoImpl)
        sync_log_repo     = providers.Singleton(SyncLogRepoImpl)
        sync_control_repo = providers.Singleton(SyncControlRepoImpl)

        # Command handlers
        ingest_handler = providers.Factory(
            IngestPMSRecordsHandler,
            clinic_repo=clinic_repo,
            patient_repo=patient_repo,
            appointment_repo=appointment_repo,
        )
        run_quota_sync_handler = providers.Factory(
            RunQuotaSyncHandler,
            clinic_repo=clinic_repo,
            patient_repo=patient_repo,
            appointment_repo=appointment_repo,
            case_repo=case_repo,
            sync_log_repo=sync_log_repo,
            sync_control_repo=sync_control_repo,
            ingest_handler=ingest_handler,
            dispatcher=event_dispatcher,
            policy=quota_policy,
            default_tags=default_tags,
            sync_interval=sync_interval,
        )
        set_sync_enabled_handler   = providers.Factory(SetSyncEnabledHandler,   sync_control_repo=sync_control_repo)
        update_case_handler        = providers.Factory(UpdateCaseHandler,       case_repo=case_repo)
        update_clinic_settings_handler = providers.Factory(UpdateClinicSettingsHandler, clinic_repo=clinic_repo)

        # Query handlers
        get_case_handler         = providers.Factory(GetCaseHandler,         case_repo=case_repo)
        list_cases_handler       = providers.Factory(ListCasesHandler,       case_repo=case_repo)
        list_patients_handler    = providers.Factory(ListPatientsHandler,    patient_repo=patient_repo)
        get_sync_log_handler     = providers.Factory(GetSyncLogHandler,      sync_log_repo=sync_log_repo)
        list_sync_logs_handler   = providers.Factory(ListSyncLogsHandler,    sync_log_repo=sync_log_repo)
        get_sync_control_handler = providers.Factory(GetSyncControlHandler,  sync_control_repo=sync_control_repo)
        dashboard_handler        = providers.Factory(
            GetQuotaDashboardHandler,
            case_repo=case_repo,
            sync_log_repo=sync_log_repo,
        )

        # Services
        quota_sync_service = providers.Singleton(
            QuotaSyncService,
            command_bus=command_bus,
            query_bus=query_bus,
        )

        def init(self):
            cmd_bus = self.command_bus()
            cmd_bus.register(IngestPMSRecordsCommand,     self.ingest_handler())
            cmd_bus.register(RunQuotaSyncCommand,         self.run_quota_sync_handler())
            cmd_bus.register(SetSyncEnabledCommand,       self.set_sync_enabled_handler())
            cmd_bus.register(UpdateCaseCommand,           self.update_case_handler())
            cmd_bus.register(UpdateClinicSettingsCommand, self.update_clinic_settings_handler())

            qry_bus = self.query_bus()
            qry_bus.register(GetCaseQuery,           self.get_case_handler())
            qry_bus.register(ListCasesQuery,         self.list_cases_handler())
            qry_bus.register(ListPatientsQuery,      self.list_patients_handler())
            qry_bus.register(GetSyncLogQuery,        self.get_sync_log_handler())
            qry_bus.register(ListSyncLogsQuery,      self.list_sync_logs_handler())
            qry_bus.register(GetSyncControlQuery,    self.get_sync_control_handler())
            qry_bus.register(GetQuotaDashboardQuery, self.dashboard_handler())

            subscribe_metrics(self.event_dispatcher())

    # ------- INSTANTIATION AND CONFIG -------
    container = Container()
    container.config.quota.wc.from_value(settings.QUOTA_DEFAULT_WC)
    container.config.quota.epc.from_value(settings.QUOTA_DEFAULT_EPC)
    container.config.quota.wc_tags.from_value(list(settings.QUOTA_DEFAULT_WC_TAGS))
    container.config.quota.epc_tags.from_value(list(settings.QUOTA_DEFAULT_EPC_TAGS))
    container.config.quota.sync_interval_hours.from_value(settings.QUOTA_SYNC_INTERVAL_HOURS)
    Container.init(container)
    return container
