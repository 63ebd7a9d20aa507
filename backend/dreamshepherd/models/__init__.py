from dreamshepherd.models.dream import Dream, slugify
from dreamshepherd.models.dreamer import Dreamer

__all__ = [
    "Dream",
    "Dreamer",
    "slugify",
]
