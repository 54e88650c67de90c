# Configuration for the tileset explorer

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from tsx_manager import LoaderConfig

# Logging
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(levelname)s %(message)s"

# JSON report
DEFAULT_JSON_INDENT = 2

# Summary table: widest image path shown before truncation
MAX_PATH_COLUMN = 48


@dataclass
class ExplorerConfig:
    """Settings for one run of the explorer."""
    loader: LoaderConfig = field(default_factory=LoaderConfig)
    check_images: bool = False
    image_root: Optional[Path] = None
    json_path: Optional[Path] = None
    tile_id: Optional[int] = None
    log_level: str = DEFAULT_LOG_LEVEL
