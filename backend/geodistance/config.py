# geodistance/config.py
import logging
import os
from typing import Dict, List, Literal, Optional

from pydantic import SecretStr, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError


class Settings(BaseSettings):
    # Elasticsearch lookup
    ES_HOSTS: List[str] = ["localhost:9200"]
    # comma-delimited index list, field substitution allowed (e.g. logs-%{+YYYY.MM.dd});
    # empty searches every index
    ES_INDEX: str = ""
    # query string syntax; the time window clause is appended to it
    ES_QUERY: Optional[str] = None
    # path to a JSON query body, used instead of ES_QUERY when set
    QUERY_TEMPLATE: Optional[str] = None
    # comma-delimited <field>:<direction> pairs
    ES_SORT: str = "@timestamp:desc"
    ES_USER: Optional[str] = None
    ES_PASSWORD: Optional[SecretStr] = None
    ES_SSL: bool = False
    ES_CA_FILE: Optional[str] = None
    ES_REQUEST_TIMEOUT: float = 20.0
    ENABLE_SORT: bool = True
    RESULT_SIZE: int = 1

    # Distance / speed check
    METRIC_SYSTEM: Literal["mph", "kmh"] = "mph"
    GEO_FIELD: str = "MLGeo"
    SPEED_TRIGGER: float = 500
    # hours back from now to look for the previous event
    TIME_INTERVAL: int = 1
    # also write the distance to the event
    KEEP_RESULT: bool = True
    TRIGGER_TAG: str = "account_compromised"
    TAG_ON_FAILURE: List[str] = ["_geodistance_failure"]

    # Applied to every event the filter handled
    ADD_TAG: List[str] = []
    REMOVE_TAG: List[str] = []
    ADD_FIELD: Dict[str, str] = {}
    REMOVE_FIELD: List[str] = []

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )


def load_settings(**overrides) -> Settings:
    """Reads env/.env once; overrides win over both. Bad values are fatal."""
    try:
        return Settings(**overrides)
    except ValidationError as e:
        raise ConfigError(f"invalid configuration: {e}") from e


def load_query_template(path: str) -> str:
    if not os.path.isfile(path):
        raise ConfigError(f"query template not found: {path}")
    if os.path.getsize(path) == 0:
        raise ConfigError(f"query template is empty: {path}")
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return fh.read()
    except OSError as e:
        raise ConfigError(f"cannot read query template {path}: {e}") from e


def setup_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s",
    )
