from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    BOT_TOKEN: str = ""
    DEV_DRY_RUN: bool = False
    ADMIN_ID: int = 0
    ADMIN_USER_IDS: list[int] | str = Field(default_factory=list)

    # Хранилище леджера
    DATA_DIR: str = "var/economy"
    LEGACY_MONEY_FILE: str = "money.json"

    # Логи
    LOG_LEVEL: str = "INFO"
    LOG_DIR: str = "logs"

    # Экономика
    DAILY_GRANT_AMOUNT: int = Field(default=50, ge=1)
    DAILY_COOLDOWN_HOURS: float = Field(default=24.0, gt=0)
    LEADERBOARD_SIZE: int = Field(default=10, ge=1, le=50)
    MAX_AMOUNT: int = Field(default=1_000_000, ge=1)
    HISTORY_LIMIT: int = Field(default=5, ge=1, le=50)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @field_validator("ADMIN_ID", mode="before")
    @classmethod
    def _fix_admin_id(cls, v):
        if v in (None, ""):
            return 0
        return int(v)

    @field_validator("ADMIN_USER_IDS", mode="before")
    @classmethod
    def _parse_admin_ids(cls, v):
        if v in (None, "", []):
            return []
        if isinstance(v, (list, tuple, set)):
            return [int(item) for item in v]
        parts = [part.strip() for part in str(v).split(",") if part.strip()]
        return [int(part) for part in parts]

    @property
    def admin_ids(self) -> set[int]:
        """All user ids allowed to run privileged commands."""

        ids = {int(item) for item in self.ADMIN_USER_IDS} if isinstance(self.ADMIN_USER_IDS, list) else set()
        if self.ADMIN_ID:
            ids.add(self.ADMIN_ID)
        return ids

    @property
    def daily_cooldown_millis(self) -> int:
        return int(self.DAILY_COOLDOWN_HOURS * 3600 * 1000)


settings = Settings()
