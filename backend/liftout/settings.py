from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="APP_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    # Applied per request; storage retries stop once it has elapsed.
    request_timeout_s: float = Field(default=15.0, validation_alias="REQUEST_TIMEOUT_S")

    # Links rendered into notification emails.
    frontend_base_url: str = Field(
        default="https://app.liftout.example", validation_alias="FRONTEND_BASE_URL"
    )
    # Extra browser origins, comma-separated.
    cors_allowed_origins: str | None = Field(default=None, validation_alias="CORS_ALLOWED_ORIGINS")

    # AWS / data
    aws_region: str = Field(default="us-east-1", validation_alias="AWS_REGION")
    ddb_table_name: str | None = Field(default=None, validation_alias="DDB_TABLE_NAME")
    ddb_connect_timeout_s: float = Field(default=2.0, validation_alias="DDB_CONNECT_TIMEOUT_S")
    ddb_read_timeout_s: float = Field(default=10.0, validation_alias="DDB_READ_TIMEOUT_S")
    ddb_endpoint_url: str | None = Field(default=None, validation_alias="DDB_ENDPOINT_URL")

    # Cursor tokens handed to clients are encrypted with this key.
    pagination_token_key: str | None = Field(default=None, validation_alias="PAGINATION_TOKEN_KEY")

    # Auth (Cognito)
    cognito_user_pool_id: str | None = Field(
        default=None, validation_alias="COGNITO_USER_POOL_ID"
    )
    cognito_client_id: str | None = Field(
        default=None, validation_alias="COGNITO_CLIENT_ID"
    )
    cognito_region: str = Field(default="us-east-1", validation_alias="COGNITO_REGION")

    # Notifications (SES + outbox)
    email_from_address: str | None = Field(default=None, validation_alias="EMAIL_FROM_ADDRESS")
    notifications_enabled: bool = Field(default=True, validation_alias="NOTIFICATIONS_ENABLED")
    outbox_batch_limit: int = Field(default=30, validation_alias="OUTBOX_BATCH_LIMIT")

    # Pagination defaults
    default_page_limit: int = Field(default=20, validation_alias="DEFAULT_PAGE_LIMIT")
    max_page_limit: int = Field(default=100, validation_alias="MAX_PAGE_LIMIT")

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        if v in ("test", "testing"):
            return "test"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def is_development(self) -> bool:
        return self.normalized_environment == "development"

    def clamp_page_limit(self, limit: int | None) -> int:
        lim = int(limit or self.default_page_limit)
        return max(1, min(int(self.max_page_limit), lim))

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development and test runs may start with partial config; production
        must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        if not self.ddb_table_name:
            missing.append("DDB_TABLE_NAME")
        if not self.cognito_user_pool_id:
            missing.append("COGNITO_USER_POOL_ID")
        if not self.cognito_client_id:
            missing.append("COGNITO_CLIENT_ID")
        # Cursor tokens must never be sealed with the fallback key in prod.
        if not self.pagination_token_key:
            missing.append("PAGINATION_TOKEN_KEY")
        if self.notifications_enabled and not self.email_from_address:
            missing.append("EMAIL_FROM_ADDRESS (or NOTIFICATIONS_ENABLED=false)")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "request_timeout_s": self.request_timeout_s,
            "aws": {
                "aws_region": self.aws_region,
                "ddb_table_name": self.ddb_table_name,
                "ddb_endpoint_url": self.ddb_endpoint_url,
            },
            "auth": {
                "cognito_user_pool_id": self.cognito_user_pool_id,
                "cognito_client_id": self.cognito_client_id,
                "cognito_region": self.cognito_region,
            },
            "notifications": {
                "enabled": bool(self.notifications_enabled),
                "email_from_address_configured": _has(self.email_from_address),
                "outbox_batch_limit": self.outbox_batch_limit,
            },
            "pagination_token_key_configured": _has(self.pagination_token_key),
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


settings = get_settings()
