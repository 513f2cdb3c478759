from django.apps import AppConfig


class QuotaTrackerConfig(AppConfig):
    name = "quota_tracker_api"
    verbose_name = "Physio Quota Tracker API"

    def ready(self):
        from django.conf import settings

        from quota_core.adapters.config.composition_root import (
            setup_di_container_from_settings,
        )

        setup_di_container_from_settings(settings)
