"""Configuration models using Pydantic for validation."""
from typing import List, Literal, Optional
from pydantic import BaseModel, Field, field_validator, model_validator
import os

# getParameter names we know how to publish, mapped to metric names.
KNOWN_PARAMETERS = {
    "cursorTimeoutMillis": "cursor_timeout_millis",
    "ttlMonitorSleepSecs": "ttl_monitor_sleep_secs",
    "transactionLifetimeLimitSeconds": "transaction_lifetime_limit_seconds",
}


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"


class TLSConfig(BaseModel):
    """Client TLS settings for the MongoDB connection."""
    enabled: bool = False
    certificate_key_file: Optional[str] = None  # PEM with certificate and private key
    ca_file: Optional[str] = None
    allow_invalid_hostnames: bool = False
    x509_auth: bool = False  # Authenticate with the client certificate

    @model_validator(mode='after')
    def validate_x509(self):
        """X.509 authentication needs a client certificate."""
        if self.x509_auth and not self.certificate_key_file:
            raise ValueError("tls.x509_auth requires tls.certificate_key_file")
        return self


class MongoDBConfig(BaseModel):
    """Connection settings for the monitored instance."""
    uri: str = "mongodb://localhost:27017"
    username: Optional[str] = None
    password: Optional[str] = None
    auth_mechanism: Optional[str] = None
    auth_source: Optional[str] = None
    connect_timeout_ms: int = 10000
    server_selection_timeout_ms: int = 10000
    socket_timeout_ms: Optional[int] = None
    tls: TLSConfig = Field(default_factory=TLSConfig)

    @field_validator('uri')
    @classmethod
    def validate_uri(cls, v):
        if not v.startswith(("mongodb://", "mongodb+srv://")):
            return f"mongodb://{v}"
        return v


class CollectorsConfig(BaseModel):
    """Which sub-collectors run on each pull, and how long each may take."""
    max_time_ms: int = 1000
    replset: bool = False
    top: bool = False
    database: bool = False
    collection: bool = False
    connpoolstats: bool = False
    parameters: bool = False
    sharding: bool = False
    parameter_names: List[str] = Field(default_factory=lambda: list(KNOWN_PARAMETERS))
    excluded_databases: List[str] = Field(default_factory=lambda: ["admin", "test"])

    @field_validator('max_time_ms')
    @classmethod
    def validate_max_time(cls, v):
        if v <= 0:
            raise ValueError("max_time_ms must be positive")
        return v

    @field_validator('parameter_names')
    @classmethod
    def validate_parameter_names(cls, v):
        unknown = [name for name in v if name not in KNOWN_PARAMETERS]
        if unknown:
            raise ValueError(
                f"Unknown parameters {unknown}; supported: {sorted(KNOWN_PARAMETERS)}"
            )
        return v


class WebConfig(BaseModel):
    """Prometheus pull endpoint and control API."""
    listen_address: str = "0.0.0.0"
    port: int = 9216
    control_api_enabled: bool = True
    control_api_port: int = 9217


class Config(BaseModel):
    """Root configuration model."""
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    mongodb: MongoDBConfig = Field(default_factory=MongoDBConfig)
    collectors: CollectorsConfig = Field(default_factory=CollectorsConfig)
    web: WebConfig = Field(default_factory=WebConfig)

    class Config:
        populate_by_name = True

    @model_validator(mode='after')
    def validate_ports(self):
        """The pull endpoint and control API cannot share a port."""
        if self.web.control_api_enabled and self.web.port == self.web.control_api_port:
            raise ValueError("web.port and web.control_api_port must differ")
        return self


def load_config(config_path: Optional[str] = None) -> Config:
    """Load and validate configuration from an optional YAML file."""
    import yaml

    raw_config = {}
    if config_path is not None:
        if not os.path.exists(config_path):
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        with open(config_path, 'r') as f:
            raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_uri := os.getenv('MONGODB_URI'):
        raw_config.setdefault('mongodb', {})['uri'] = env_uri

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
