from django.apps import AppConfig


class TokenImportConfig(AppConfig):
    default_auto_field = 'django.db.models.BigAutoField'
    name = 'token_import'
    verbose_name = 'Token Import'

    def ready(self):
        from .config import get_import_config
        from .logging_utils import configure_logging

        logging_config = get_import_config()['logging']
        configure_logging(level=logging_config['level'], json_output=logging_config['json'])
