"""Configuration schema for takeout-fixer."""

from pydantic import BaseModel, ConfigDict, Field

from .common import LoggingConfig


class FixerConfig(BaseModel):
    """Configuration for a fix run."""

    model_config = ConfigDict(extra='forbid')

    takeout_root: str = Field(
        default="Takeout",
        description="Top-level directory inside every Takeout archive"
    )
    photo_dir: str = Field(
        default="Google Photos",
        description="Photos directory under the Takeout root (localized by Google)"
    )
    output_dir: str = Field(
        default="takeout-fixed",
        description="Directory the album tree is written to; must not exist yet"
    )
    dry_run: bool = Field(
        default=False,
        description="Log what would be written without writing anything"
    )
    show_progress: bool = Field(
        default=True,
        description="Log periodic progress with ETA"
    )
    progress_log_interval: int = Field(
        default=100,
        ge=1,
        description="Log progress every N media files"
    )

    @property
    def photo_path_prefix(self) -> str:
        """In-archive prefix of the photos tree, e.g. ``Takeout/Google Photos/``."""
        root = self.takeout_root.strip("/")
        photo_dir = self.photo_dir.strip("/")
        return f"{root}/{photo_dir}/"


class TakeoutFixerConfig(BaseModel):
    """Root configuration for takeout-fixer."""

    model_config = ConfigDict(extra='forbid')

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    fixer: FixerConfig = Field(default_factory=FixerConfig)
