"""Family Menu Server Configuration."""

import secrets
from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    server_name: str = "Menu Familiar API"
    host: str = "0.0.0.0"
    port: int = 5000
    debug: bool = False
    log_level: str = "INFO"

    # Paths
    data_dir: Path = Path.home() / "familymenu" / "data"

    # Database
    db_path: Path = Path.home() / "familymenu" / "data" / "familymenu.db"

    # JWT
    jwt_secret: str = ""
    jwt_algorithm: str = "HS256"
    access_token_expire_minutes: int = 10080  # 7 days

    # Login lockout
    max_login_attempts: int = 5
    login_lockout_minutes: int = 15

    # Families
    invitation_code_attempts: int = 5

    model_config = {"env_prefix": "FAMILYMENU_"}

    def ensure_dirs(self) -> None:
        """Create all required directories."""
        for d in [self.data_dir, self.db_path.parent]:
            d.mkdir(parents=True, exist_ok=True)

    def ensure_secrets(self) -> None:
        """Generate the JWT secret if not set, persist it so tokens survive restarts."""
        secrets_file = self.data_dir / ".secrets"
        saved = {}
        if secrets_file.exists():
            for line in secrets_file.read_text().strip().splitlines():
                if "=" in line:
                    k, v = line.split("=", 1)
                    saved[k.strip()] = v.strip()

        if not self.jwt_secret:
            self.jwt_secret = saved.get("jwt_secret", "") or secrets.token_urlsafe(32)

        secrets_file.write_text(f"jwt_secret={self.jwt_secret}\n")


settings = Settings()
settings.ensure_dirs()
settings.ensure_secrets()
