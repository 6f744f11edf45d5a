from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    """
    App configuration.

    Values come from the environment first, then from `config.env` or `.env`
    at the repository root (or the current directory).
    """

    model_config = SettingsConfigDict(
        env_file=(
            str(_PROJECT_ROOT / "config.env"),
            str(_PROJECT_ROOT / ".env"),
            "config.env",
            ".env",
        ),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # A full URL wins over the individual DB_* parts (e.g. sqlite:// for local runs)
    database_url_override: str | None = Field(default=None, validation_alias="DATABASE_URL")
    db_host: str = Field(default="localhost", validation_alias="DB_HOST")
    db_port: int = Field(default=5432, validation_alias="DB_PORT")
    db_user: str = Field(default="restobar", validation_alias="DB_USER")
    db_password: str = Field(default="restobar", validation_alias="DB_PASSWORD")
    db_name: str = Field(default="restobar", validation_alias="DB_NAME")
    db_echo: bool = Field(default=False, validation_alias="DB_ECHO")

    secret_key: str = Field(default="CHANGE_THIS_IN_PRODUCTION", validation_alias="SECRET_KEY")
    algorithm: str = Field(default="HS256", validation_alias="ALGORITHM")
    access_token_expire_minutes: int = Field(default=1440, validation_alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    environment: str = Field(default="development", validation_alias="ENVIRONMENT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    cors_origins: str = Field(
        default="http://localhost:5173",
        validation_alias="CORS_ORIGINS"
    )

    # Base URL printed into table QR codes: {public_base_url}/table/{number}
    public_base_url: str = Field(default="http://localhost:5173", validation_alias="PUBLIC_BASE_URL")
    uploads_dir: Path = Field(default=_PROJECT_ROOT / "back" / "uploads", validation_alias="UPLOADS_DIR")

    # Receipt header
    restaurant_name: str = Field(default="RestoBar", validation_alias="RESTAURANT_NAME")
    restaurant_address: str = Field(default="", validation_alias="RESTAURANT_ADDRESS")
    restaurant_phone: str = Field(default="", validation_alias="RESTAURANT_PHONE")
    currency: str = Field(default="FCFA", validation_alias="CURRENCY")

    payment_methods: str = Field(
        default="cash,orange_money,mtn_momo,moov_money,wave",
        validation_alias="PAYMENT_METHODS"
    )

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def enabled_payment_methods(self) -> list[str]:
        return [m.strip() for m in self.payment_methods.split(",") if m.strip()]

    def table_url(self, number: int) -> str:
        return f"{self.public_base_url.rstrip('/')}/table/{number}"

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        # SQLModel uses SQLAlchemy under the hood; this uses the psycopg driver (v3).
        return (
            f"postgresql+psycopg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )


settings = Settings()
