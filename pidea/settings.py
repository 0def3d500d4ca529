from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "PIDEA Backend"
    app_version: str = "0.1.0"
    api_key: str = "dev-api-key-12345"
    db_path: str = "data/pidea.db"
    preserve_old_db: bool = False
    log_level: str = "INFO"

    # IDE detection and startup
    ide_host: str = "127.0.0.1"
    ide_probe_timeout: float = 1.0
    ide_user_data_dir: str = "data/ide-profiles"
    ide_stop_grace_period: float = 5.0
    enabled_ide_types: list[str] = ["cursor", "vscode", "windsurf"]

    # Workspace analysis
    analysis_max_files: int = 5000
    analysis_ignore_dirs: list[str] = [
        ".git",
        "node_modules",
        "__pycache__",
        ".venv",
        "venv",
        "dist",
        "build",
        ".next",
        "coverage",
    ]

    model_config = SettingsConfigDict(
        env_prefix="PIDEA_",
        env_file=".env",
        env_file_encoding="utf-8",
    )


settings = Settings()
