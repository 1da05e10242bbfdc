from typing import Optional, Set

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = Field("localhost", description="PostgreSQL server host.")
    port: int = Field(5432, description="PostgreSQL server port.")
    user: str = Field("postgres", description="Role used to read statistics.")
    password: str = Field("", description="Password for the statistics role.")
    maintenance_database: str = Field(
        "postgres",
        description="Database used for cluster-wide queries (database list, connections).",
    )
    exclude_dbs: Set[str] = Field(
        default_factory=set,
        description="Databases hidden from database listing and connection counts.",
    )
    log_level: str = Field("INFO", description="Level name for the pgstats logger.")
    log_file: Optional[str] = Field(
        None, description="Log to this file instead of stderr when set."
    )
    log_max_bytes: int = Field(0, description="Rotate the log file at this size.")
    log_backup_count: int = Field(0, description="Number of rotated log files to keep.")
    sqlalchemy_echo: bool = Field(False, description="Enable SQL echo logging.")

    @field_validator("log_level")
    def normalise_log_level(cls, value: str) -> str:
        return value.strip().upper()

    class Config:
        env_prefix = "PGSTATS_"


settings = Settings()
