# backend/catalog_api/core/config.py

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_env: str = "dev"

    # SQLite for local dev, Postgres in prod
    database_url: str = "sqlite:///./catalog.db"
    sql_echo: bool = False
    auto_create_tables: bool = True
    seed_users: bool = True

    jwt_secret_key: str = "dev-secret-change-me"
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080

    # comma-separated allowlist, falls back to frontend_url + localhost
    cors_origins: str = ""
    frontend_url: str = "http://localhost:3000"

    log_level: str = "INFO"
    log_json: bool = False

    default_page_size: int = 10
    max_page_size: int = 100

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def allow_origins(self) -> list[str]:
        if self.cors_origins.strip():
            return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
        return list({self.frontend_url.strip(), "http://localhost:3000"})


settings = Settings()
