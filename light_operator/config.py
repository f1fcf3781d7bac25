# Copyright 2025 ApeCloud, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.


"""
Operator configuration

Values are read, from highest to lowest priority, from keyword arguments, the
process environment (prefix ``LO__``, nested sections separated by ``__``, for
example ``LO__SMART_HOME__SMARTTHINGS__API_KEY``), a ``.env`` file, and the YAML
files ``config.local.yaml`` and ``config.yaml`` in the working directory.
"""

import logging
from enum import Enum
from typing import Optional, Tuple, Type

from pydantic import BaseModel, Field
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    YamlConfigSettingsSource,
)


class SmartHomePlatform(str, Enum):
    SMARTTHINGS = "smartthings"


class SmartThingsSettings(BaseModel):
    api_key: Optional[str] = Field(None, description="Personal access token used as bearer credential")
    base_url: str = Field("https://api.smartthings.com/v1/", description="SmartThings REST API root")
    request_timeout: float = Field(10.0, description="Per-request timeout in seconds")
    settle_delay: float = Field(0.2, description="Pause between the health ping and the status read")


class SmartHomeSettings(BaseModel):
    platform: SmartHomePlatform = SmartHomePlatform.SMARTTHINGS
    smartthings: SmartThingsSettings = Field(default_factory=SmartThingsSettings)


class ControllerSettings(BaseModel):
    sync_interval_seconds: int = Field(60, ge=1, description="Requeue delay after a successful pass")
    error_requeue_seconds: int = Field(5, ge=1, description="Requeue delay after a failed pass")
    resync_interval_seconds: int = Field(300, ge=1, description="Interval of the full resync")
    field_manager: str = Field("cntrlr", description="Field manager used for server-side apply")
    lock_expire_seconds: int = Field(120, ge=1, description="Expiry of the per-light reconcile lock")


class KubernetesSettings(BaseModel):
    api_server: str = "https://kubernetes.default.svc"
    token_path: Optional[str] = "/var/run/secrets/kubernetes.io/serviceaccount/token"
    ca_path: Optional[str] = "/var/run/secrets/kubernetes.io/serviceaccount/ca.crt"
    verify_ssl: bool = True
    request_timeout: float = 10.0


class CelerySettings(BaseModel):
    broker_url: str = "redis://localhost:6379/0"
    result_backend: Optional[str] = None


class LogSettings(BaseModel):
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class HealthCheckSettings(BaseModel):
    enable_server: bool = True
    host: str = "0.0.0.0"
    port: int = 8080


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="LO__",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        yaml_file=["config.yaml", "config.local.yaml"],
    )

    smart_home: SmartHomeSettings = Field(default_factory=SmartHomeSettings)
    controller: ControllerSettings = Field(default_factory=ControllerSettings)
    kubernetes: KubernetesSettings = Field(default_factory=KubernetesSettings)
    celery: CelerySettings = Field(default_factory=CelerySettings)
    redis_url: str = "redis://localhost:6379/1"
    log: LogSettings = Field(default_factory=LogSettings)
    health_check: HealthCheckSettings = Field(default_factory=HealthCheckSettings)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: Type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> Tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlConfigSettingsSource(settings_cls),
            file_secret_settings,
        )


settings = Settings()


def get_settings() -> Settings:
    return settings


def setup_logging(config: Settings = None):
    """Configure root logging once for the whole process"""
    config = config or settings
    level = getattr(logging, config.log.level.upper(), None)
    if not isinstance(level, int):
        level = logging.INFO
    logging.basicConfig(level=level, format=config.log.format)

    # Request lines from the HTTP stack are noise at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)
