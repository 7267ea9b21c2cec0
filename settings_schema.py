from typing import Literal

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    language: Literal["fr", "en"] = "fr"
    timezone: str = ""
    weight_unit: Literal["kg", "lb"] = "kg"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    recent_achievements_limit: int = Field(3, ge=1, le=10)
    api_token: str | bool = ""


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
