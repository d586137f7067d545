import random
import string
from typing import Optional

ALPHABET = string.ascii_letters + string.digits
FILENAME_LENGTH = 10


class FilenameGenerator:
    """Random alphanumeric names for uploads that arrive without a filename."""

    def __init__(self, rng: Optional[random.Random] = None, length: int = FILENAME_LENGTH):
        self._rng = rng or random.Random()
        self._length = length

    def generate(self) -> str:
        return ''.join(self._rng.choice(ALPHABET) for _ in range(self._length))
