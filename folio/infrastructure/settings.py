"""
Application settings and environment configuration.

Everything read from the environment lives here. ``Settings.from_env()`` is
called once at startup (after ``load_dotenv()``) and the resulting object is
handed to every service that needs secrets, paths or mail settings.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

# Project paths
FOLIO_ROOT = Path(__file__).parent.parent
DATA_DIR = FOLIO_ROOT / "data"


def _split_csv(raw: str | None) -> tuple[str, ...]:
    if not raw:
        return ()
    return tuple(part.strip() for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class Settings:
    """Runtime configuration, built once and passed around explicitly."""

    env: str = "development"
    base_url: str = "http://localhost:8000"
    allowed_origins: tuple[str, ...] = field(default_factory=tuple)

    # Only honour X-Forwarded-For when a known proxy sits in front
    trust_proxy: bool = False

    # Storage
    db_path: Path = DATA_DIR / "folio.db"
    content_path: Path = DATA_DIR / "content.json"
    backup_dir: Path = DATA_DIR / "backups"

    # Secrets
    jwt_secret: str = "change-me-user-secret"
    admin_secret: str = "change-me-admin-secret"
    trap_secret: str = "change-me-honeypot-secret"
    admin_password: str | None = None

    # Gemini
    gemini_api_key: str | None = None
    google_cloud_project: str | None = None
    gemini_model: str = "gemini-2.5-flash-lite"
    gemini_location: str = "us-central1"

    # SMTP
    smtp_host: str | None = None
    smtp_port: int = 465
    smtp_user: str | None = None
    smtp_password: str | None = None
    smtp_from_name: str = "Folio"

    # Recipients
    email_to: str | None = None
    admin_emails: tuple[str, ...] = field(default_factory=tuple)

    # Profile used by the AI responder
    owner_name: str = "Portfolio Owner"
    resume_path: Path = DATA_DIR / "resume.pdf"
    resume_filename: str = "Resume.pdf"
    about_path: Path = DATA_DIR / "about_me.txt"

    # Hidden trap link in outgoing user emails
    honeypot_links: bool = False

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from environment variables, with safe development defaults."""
        port = os.getenv("API_PORT", "8000")
        email_to = os.getenv("EMAIL_TO")
        admin_emails = _split_csv(os.getenv("ADMIN_EMAILS")) or _split_csv(email_to)

        return cls(
            env=os.getenv("FOLIO_ENV", "development"),
            base_url=os.getenv("BASE_URL", f"http://localhost:{port}"),
            allowed_origins=_split_csv(os.getenv("FOLIO_ALLOWED_ORIGINS")),
            trust_proxy=os.getenv("FOLIO_TRUST_PROXY", "false").lower() == "true",
            db_path=Path(os.getenv("FOLIO_DB_PATH", str(DATA_DIR / "folio.db"))),
            content_path=Path(os.getenv("FOLIO_CONTENT_PATH", str(DATA_DIR / "content.json"))),
            backup_dir=Path(os.getenv("FOLIO_BACKUP_DIR", str(DATA_DIR / "backups"))),
            jwt_secret=os.getenv("JWT_SECRET", cls.jwt_secret),
            admin_secret=os.getenv("ADMIN_SECRET", cls.admin_secret),
            trap_secret=os.getenv("TRAP_SECRET", cls.trap_secret),
            admin_password=os.getenv("ADMIN_PASSWORD"),
            gemini_api_key=os.getenv("GEMINI_API_KEY", os.getenv("GOOGLE_API_KEY")),
            google_cloud_project=os.getenv("GOOGLE_CLOUD_PROJECT"),
            gemini_model=os.getenv("GEMINI_MODEL", cls.gemini_model),
            gemini_location=os.getenv("GEMINI_LOCATION", cls.gemini_location),
            smtp_host=os.getenv("SMTP_HOST"),
            smtp_port=int(os.getenv("SMTP_PORT", "465")),
            smtp_user=os.getenv("SMTP_USER"),
            smtp_password=os.getenv("SMTP_PASSWORD", os.getenv("SMTP_PASS")),
            smtp_from_name=os.getenv("SMTP_FROM_NAME", cls.smtp_from_name),
            email_to=email_to,
            admin_emails=admin_emails,
            owner_name=os.getenv("FOLIO_OWNER_NAME", cls.owner_name),
            resume_path=Path(os.getenv("FOLIO_RESUME_PATH", str(DATA_DIR / "resume.pdf"))),
            resume_filename=os.getenv("FOLIO_RESUME_FILENAME", cls.resume_filename),
            about_path=Path(os.getenv("FOLIO_ABOUT_PATH", str(DATA_DIR / "about_me.txt"))),
            honeypot_links=os.getenv("FOLIO_HONEYPOT_LINKS", "false").lower() == "true",
        )

    def is_production(self) -> bool:
        return self.env == "production"

    def is_development(self) -> bool:
        return self.env == "development"

    @property
    def llm_configured(self) -> bool:
        return bool(self.gemini_api_key or self.google_cloud_project)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)
