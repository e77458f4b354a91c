"""Engine settings read from configs/config.json through workflow resources."""

from datetime import timedelta

from pydantic import BaseModel
from workflows.resource import ResourceConfig, ResourceManager

from .schemas.patient import GroupPermission

CONFIG_FILE = "configs/config.json"


class MonitorConfig(BaseModel):
    """Settings for the periodic deadline monitor."""

    check_interval_seconds: float = 3600
    # Extra slack added to the interval when deciding whether a flag is new
    notification_grace_seconds: float = 60
    notify_permissions: list[GroupPermission] = [
        GroupPermission.EDIT,
        GroupPermission.ADMIN,
    ]

    @property
    def new_flag_window(self) -> timedelta:
        """Flags raised within this window of now have not been announced yet."""
        return timedelta(
            seconds=self.check_interval_seconds + self.notification_grace_seconds
        )


class ValidationConfig(BaseModel):
    """Windows used by the history and documentation checks."""

    history_window_days: int = 90
    recent_documentation_days: int = 180


MONITOR_SETTINGS = ResourceConfig(
    config_file=CONFIG_FILE,
    path_selector="monitor",
    label="Deadline Monitor",
    description="Tick interval, notification grace and notified permissions",
)
MONITOR_SETTINGS.set_type_annotation(MonitorConfig)

VALIDATION_SETTINGS = ResourceConfig(
    config_file=CONFIG_FILE,
    path_selector="validation",
    label="Validation Windows",
    description="History and documentation recency windows for pre-submission checks",
)
VALIDATION_SETTINGS.set_type_annotation(ValidationConfig)


async def resolve_monitor_config(resource_manager: ResourceManager) -> MonitorConfig:
    return await resource_manager.get(MONITOR_SETTINGS)


async def resolve_validation_config(resource_manager: ResourceManager) -> ValidationConfig:
    return await resource_manager.get(VALIDATION_SETTINGS)
