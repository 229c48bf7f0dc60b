from pydantic_settings import BaseSettings
from dotenv import load_dotenv
from pathlib import Path
import os


load_dotenv()


class Settings(BaseSettings):
    app_name: str = "Atestados API"
    debug: bool = False
    database_url: str = "sqlite:///./atestados.db"
    host: str = "127.0.0.1"
    port: int = 8000
    secret_key: str = ""
    access_token_expire_minutes: int = 15
    refresh_token_expire_minutes: int = 60 * 24 * 7
    allowed_hosts: str = ""
    static_dir: Path = Path(__file__).parent.parent.parent / "static"
    public_url: str = "http://localhost:8000"

    log_file: str = "logs/application.log"
    log_level: str = "INFO"

    # Submission rules
    max_upload_size_bytes: int = 10 * 1024 * 1024
    submission_grace_days: int = 5
    max_leave_days: int = 365

    # Attempts to re-read and re-merge a review after a concurrent write
    review_max_attempts: int = 3

    # Bootstrap administrator (seed.py)
    admin_email: str = ""
    admin_password: str = ""
    admin_name: str = "Administrador"


settings = Settings()

if not settings.secret_key:
    raise RuntimeError("Secret key not configured.")


os.makedirs(settings.static_dir, exist_ok=True)
