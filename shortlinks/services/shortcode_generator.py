"""
Shortcode Generator

Produces random fixed-length shortcodes and, with the help of the store,
finds one that has never been issued.

Design Decisions:
- Random codes from the `secrets` module: unpredictable, so codes cannot be
  enumerated the way sequential base62 IDs can
- Lowercase alphabet: codes are case-normalized, so generating mixed case
  would only produce collisions after normalization
- Uniqueness is not the generator's job; generate_unique checks the store and
  the unique index still has the final word at insert time
- Bounded attempts: exhausting the budget is reported instead of looping,
  because it means the code length is too short for the number of issued codes
"""

import logging
import secrets
import string
from typing import Iterable, Optional, TYPE_CHECKING

from shortlinks.core.exceptions import ExhaustedAttemptsError
from shortlinks.core.validators import is_reserved

if TYPE_CHECKING:
    from shortlinks.db.store import ShortcodeStore

logger = logging.getLogger(__name__)

BASE36_CHARS = string.digits + string.ascii_lowercase
URL_SAFE_SYMBOLS = "-_"


class ShortcodeGenerator:
    """
    Generate random shortcodes.

    Args:
        length: Number of characters per code (default: 8)
        allow_symbols: Also draw from '-' and '_'
        reserved: Words never handed out (checked by generate_unique)
    """

    def __init__(
        self,
        length: int = 8,
        allow_symbols: bool = False,
        reserved: Optional[Iterable[str]] = None,
    ):
        self.length = length
        self.alphabet = BASE36_CHARS + (URL_SAFE_SYMBOLS if allow_symbols else "")
        self.reserved = tuple(reserved or ())

    def generate(self) -> str:
        """Return a random code. No I/O, no uniqueness guarantee."""
        return ''.join(secrets.choice(self.alphabet) for _ in range(self.length))

    async def generate_unique(self, store: "ShortcodeStore", max_attempts: int = 10) -> str:
        """
        Generate a code that no record has ever used.

        Args:
            store: Store used for the existence check
            max_attempts: Upper bound on generate-and-check rounds

        Returns:
            An unused, non-reserved code

        Raises:
            ExhaustedAttemptsError: If every attempt collided
            StoreUnavailableError: If the store cannot be queried
        """
        for attempt in range(1, max_attempts + 1):
            code = self.generate()
            if is_reserved(code, self.reserved):
                continue
            if not await store.exists(code):
                logger.debug(f"Generated unique shortcode {code} after {attempt} attempt(s)")
                return code

        logger.warning(
            f"Failed to generate unique shortcode after {max_attempts} attempts "
            f"(length={self.length}, alphabet={len(self.alphabet)} chars)"
        )
        raise ExhaustedAttemptsError(max_attempts)
