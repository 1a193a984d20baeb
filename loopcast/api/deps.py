from functools import lru_cache
from typing import Annotated

from fastapi import Depends

from loopcast.config import get_settings
from loopcast.render.composer import VideoComposer
from loopcast.services.progress_tracker import progress_tracker


@lru_cache
def get_composer() -> VideoComposer:
    """Process-wide composer so cancel() can reach jobs started by other requests."""
    return VideoComposer(settings=get_settings(), tracker=progress_tracker)


Composer = Annotated[VideoComposer, Depends(get_composer)]
