from django.apps import AppConfig
from django.conf import settings
from django.core.exceptions import ImproperlyConfigured


class MarketplaceConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'marketplace'

    def ready(self):
        # Admin-facing notifications need a recipient before any request is served.
        if not (getattr(settings, 'ADMIN_NOTIFICATION_EMAIL', '') or '').strip():
            raise ImproperlyConfigured('ADMIN_NOTIFICATION_EMAIL must be set.')
