from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Casting Center"
    app_env: str = "development"

    postgres_host: str = "localhost"
    postgres_port: int = 5432
    postgres_db: str = "casting_center"
    postgres_user: str = "casting_center"
    postgres_password: str = "casting_center"

    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_socket_timeout_seconds: float = 2.0

    database_url: str | None = None
    redis_url: str | None = None
    frontend_origin: str = "http://localhost:3000"
    additional_frontend_origins: str = ""
    app_url: str = "http://localhost:3000"
    worker_heartbeat_key: str = "worker:heartbeat"
    worker_heartbeat_ttl_seconds: int = 45

    jwt_secret_key: str = "change_this_in_production"
    jwt_algorithm: str = "HS256"
    jwt_access_token_expire_minutes: int = 60

    slack_bot_token: str | None = None
    slack_api_base_url: str = "https://slack.com/api"
    slack_timeout_seconds: float = 10.0

    resend_api_key: str | None = None
    resend_api_base_url: str = "https://api.resend.com"
    email_from_address: str = "Casting Center <castings@example.com>"
    email_timeout_seconds: float = 15.0
    email_send_interval_seconds: float = 0.5
    email_task_rate_limit: str = "2/s"

    google_service_account_json_path: str | None = None
    google_drive_scopes: str = "https://www.googleapis.com/auth/drive"
    storage_root_folder_name: str = "RAW"

    automation_dispatch_mode: str = "inline"
    automation_admin_emails: str = ""

    view_invalidation_enabled: bool = True
    view_invalidation_channel: str = "views:invalidate"

    celery_task_always_eager: bool = False

    @property
    def automation_admin_email_list(self) -> list[str]:
        if not self.automation_admin_emails.strip():
            return []
        return [value.strip().lower() for value in self.automation_admin_emails.split(",") if value.strip()]

    @property
    def google_drive_scope_list(self) -> list[str]:
        return [value.strip() for value in self.google_drive_scopes.split(",") if value.strip()]

    @property
    def cors_allowed_origins(self) -> list[str]:
        origins = [self.frontend_origin.strip(), self.app_url.strip()]
        if self.additional_frontend_origins.strip():
            origins.extend(
                [value.strip() for value in self.additional_frontend_origins.split(",") if value.strip()]
            )
        unique: list[str] = []
        for origin in origins:
            if origin and origin not in unique:
                unique.append(origin)
        return unique

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    @property
    def sqlalchemy_database_uri(self) -> str:
        if self.database_url:
            return self.database_url
        return (
            f"postgresql+psycopg://{self.postgres_user}:{self.postgres_password}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def cache_redis_url(self) -> str:
        if self.redis_url:
            return self.redis_url
        return f"redis://{self.redis_host}:{self.redis_port}/0"


settings = Settings()
