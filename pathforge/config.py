"""Editor configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Editor settings."""

    # Paths
    BASE_DIR: Path = Path(__file__).parent.parent
    TEMPLATES_DIR: Path = BASE_DIR / "templates"

    # Debounce windows
    HISTORY_DEBOUNCE_MS: int = 300
    PREVIEW_DEBOUNCE_MS: int = 300

    # History
    MAX_HISTORY_SIZE: int = 50  # Oldest entries evicted first

    # Interactive layer geometry (display pixels)
    SNAP_THRESHOLD_PX: float = 8.0
    CENTER_SNAP_PERCENT: float = 2.0  # Percent of canvas size
    MIN_LAYER_SIZE_PX: float = 20.0
    DUPLICATE_OFFSET_PX: int = 10

    # Preview / thumbnail output
    PREVIEW_FORMAT: str = "webp"
    PREVIEW_LOAD_TIMEOUT_S: float = 10.0
    THUMBNAIL_SIZE: int = 200
    THUMBNAIL_QUALITY: int = 80

    # Templates
    TEMPLATE_VERSION: str = "1.0"
    TEMPLATE_NAME_MAX_LENGTH: int = 100

    # Imagor URL generation
    IMAGOR_BASE_URL: str = ""
    IMAGOR_SECRET: str = ""
    IMAGOR_UNSAFE: bool = False
    IMAGOR_SIGNER_TYPE: str = "sha1"  # sha1, sha256, sha512
    IMAGOR_SIGNER_TRUNCATE: int = 0  # 0 = keep full signature

    model_config = {"env_prefix": "PATHFORGE_"}


settings = Settings()
