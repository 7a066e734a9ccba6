from typing import List, Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # Database connection parameters
    db_host: str = Field("localhost", validation_alias=AliasChoices("DB_HOST", "POSTGRES_HOST"))
    db_port: int = Field(5432, validation_alias=AliasChoices("DB_PORT", "POSTGRES_PORT"))
    db_name: str = Field("schoolcrm", validation_alias=AliasChoices("DB_NAME", "POSTGRES_DB"))
    db_user: str = Field("postgres", validation_alias=AliasChoices("DB_USER", "POSTGRES_USER"))
    db_password: str = Field(
        "postgres", validation_alias=AliasChoices("DB_PASSWORD", "POSTGRES_PASSWORD")
    )
    db_conn_retries: int = 10
    db_conn_retry_delay: float = 2.0
    db_bootstrap: bool = True

    log_level: str = "INFO"

    # Webhook ingestion defaults
    default_source_name: str = "Outro"
    webhook_external_source: str = "webhook"
    csv_external_source: str = "csv"
    min_phone_digits: int = 10
    whatsapp_country_code: str = "55"

    cors_allow_origins: List[str] = ["*"]

    # Email delivery
    smtp_host: Optional[str] = None
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_ssl: bool = False
    smtp_use_tls: bool = True
    smtp_timeout: float = 10.0
    lead_notification_from: str = "no-reply@schoolcrm.local"
    lead_notification_subject: str = "Novo lead recebido via webhook"
    lead_notification_recipients: List[str] = []
    lead_notification_enabled: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )


settings = Settings()
