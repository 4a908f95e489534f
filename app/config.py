from functools import lru_cache
from typing import Optional
from urllib.parse import quote_plus

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    ENV: str = "local"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"

    postgres_user: str = "postgres"
    postgres_password: str = "postgres"
    postgres_db: str = "visa_desk"
    postgres_host: str = "localhost"
    postgres_port: str = "5432"
    DATABASE_URL: Optional[str] = None

    secret_key: str = "change-me-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 60 * 24

    google_client_id: str = ""
    google_client_secret: str = ""
    google_redirect_url: str = ""

    APP_BASE_URL: str = "http://localhost:3000"

    # Xendit
    XENDIT_API_URL: str = "https://api.xendit.co"
    XENDIT_SECRET_KEY: str = ""
    XENDIT_TIMEOUT_SECONDS: int = 30

    # RabbitMQ
    QUEUE_ENABLED: bool = True
    RABBITMQ_HOST: str = "localhost"
    RABBITMQ_PORT: int = 5672
    RABBITMQ_USER: str = "admin"
    RABBITMQ_PASS: str = "admin123"
    RABBITMQ_VHOST: str = "/"
    WORKER_CONCURRENCY: int = 10

    # SMTP (MailHog defaults for development)
    SMTP_HOST: str = "localhost"
    SMTP_PORT: int = 1025
    SMTP_USER: str = ""
    SMTP_PASS: str = ""
    SMTP_FROM: str = "noreply@viskatera.com"
    SMTP_TIMEOUT_SECONDS: int = 30
    STORE_NAME: str = "Viskatera"

    # Redis cache
    CACHE_ENABLED: bool = False
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: str = ""
    REDIS_DB: int = 0
    CACHE_TTL: int = 300

    # Uploads / object storage
    UPLOAD_DIR: str = "./uploads"
    MAX_UPLOAD_SIZE: int = 10 * 1024 * 1024
    STORAGE_BACKEND: str = "local"  # local | r2
    R2_ACCOUNT_ID: str = ""
    R2_ACCESS_KEY_ID: str = ""
    R2_SECRET_ACCESS_KEY: str = ""
    R2_BUCKET_NAME: str = ""

    # Audit log writer
    ACTIVITY_LOG_WORKERS: int = 2
    ACTIVITY_LOG_QUEUE_SIZE: int = 1000

    @property
    def database_url(self):
        if self.DATABASE_URL:
            return self.DATABASE_URL
        encoded_password = quote_plus(self.postgres_password)
        return (
            f"postgresql+psycopg2://{self.postgres_user}:"
            f"{encoded_password}@{self.postgres_host}:"
            f"{self.postgres_port}/{self.postgres_db}"
        )

    @property
    def rabbitmq_url(self):
        user = quote_plus(self.RABBITMQ_USER)
        password = quote_plus(self.RABBITMQ_PASS)
        vhost = quote_plus(self.RABBITMQ_VHOST, safe="")
        return f"amqp://{user}:{password}@{self.RABBITMQ_HOST}:{self.RABBITMQ_PORT}/{vhost}"

    @property
    def worker_concurrency(self) -> int:
        return self.WORKER_CONCURRENCY if self.WORKER_CONCURRENCY > 0 else 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "allow"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
