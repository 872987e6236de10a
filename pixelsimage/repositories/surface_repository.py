import logging
import os
from typing import Optional

from dotenv import load_dotenv

from ..exceptions import NotInGraphicalEnvironmentError
from .canvas import Surface

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


class SurfaceRepository:
    """
    Creates render surfaces. A headless repository has no surface-creation
    capability at all; every request for a new surface fails.
    """

    def __init__(self, headless: Optional[bool] = None):
        self.headless = _env_flag("PIXELS_HEADLESS") if headless is None else headless

    def create_surface(self, width: int, height: int) -> Surface:
        if self.headless:
            raise NotInGraphicalEnvironmentError("Pixels Image: Running out of a graphical environment")
        logger.debug(f"Creating {width}x{height} surface")
        return Surface(width, height)
