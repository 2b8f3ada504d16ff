import os


def get_settings_module() -> str:
    """Dotted path of the settings module selected by ``APP_ENV``."""
    env = os.getenv("APP_ENV", "development").lower()

    if env in {"prod", "production"}:
        return "class_attendance.settings.production"

    if env in {"test", "testing"}:
        return "class_attendance.settings.testing"

    return "class_attendance.settings.development"
