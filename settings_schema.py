from typing import Literal, Optional

from pydantic import BaseModel, ValidationError


class SettingsSchema(BaseModel):
    unit_system: Literal["metric", "imperial"] = "metric"
    weekly_workout_target: int = 3
    has_launched_before: bool = False
    remote_api_url: Optional[str] = None


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
