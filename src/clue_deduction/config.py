"""
Engine settings read from the environment.

Environment variables (a local .env file is loaded by the CLI):
    CLUE_DEBUG           - 1/true/yes for DEBUG logging
    CLUE_MAX_PASSES      - cap on elimination passes (default 100)
    CLUE_STRICT_REVEALS  - 1/true/yes to stop a shown card from ruling out
                           the other two proposed cards for the revealer
    CLUE_CARDS_FILE      - JSON card catalog; the standard game if unset
"""

import logging
import os
from dataclasses import dataclass
from typing import Mapping, Optional

from clue_deduction.cards import CardCatalog, load_catalog, standard_catalog

logger = logging.getLogger(__name__)

DEFAULT_MAX_PASSES = 100

_TRUTHY = ("1", "true", "yes")


def env_flag(name: str, environ: Optional[Mapping[str, str]] = None) -> bool:
    environ = os.environ if environ is None else environ
    return environ.get(name, "").strip().lower() in _TRUTHY


@dataclass(frozen=True)
class EngineSettings:
    """Knobs for one DeductionEngine."""
    max_passes: int = DEFAULT_MAX_PASSES
    # Off by default: a shown card also marks the revealer as not holding
    # the other two proposed cards.
    strict_reveals: bool = False

    def __post_init__(self):
        if self.max_passes < 1:
            raise ValueError(f"max_passes must be at least 1, got {self.max_passes}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineSettings":
        environ = os.environ if environ is None else environ
        raw_passes = environ.get("CLUE_MAX_PASSES", "").strip()
        try:
            max_passes = int(raw_passes) if raw_passes else DEFAULT_MAX_PASSES
        except ValueError:
            logger.warning("CLUE_MAX_PASSES=%r is not a number, using %d",
                           raw_passes, DEFAULT_MAX_PASSES)
            max_passes = DEFAULT_MAX_PASSES
        if max_passes < 1:
            logger.warning("CLUE_MAX_PASSES=%d must be at least 1, using %d",
                           max_passes, DEFAULT_MAX_PASSES)
            max_passes = DEFAULT_MAX_PASSES
        return cls(
            max_passes=max_passes,
            strict_reveals=env_flag("CLUE_STRICT_REVEALS", environ),
        )


def catalog_from_env(environ: Optional[Mapping[str, str]] = None) -> CardCatalog:
    """Load the catalog named by CLUE_CARDS_FILE, or the standard one."""
    environ = os.environ if environ is None else environ
    path = environ.get("CLUE_CARDS_FILE", "").strip()
    if not path:
        return standard_catalog()
    logger.debug("Loading card catalog from %s", path)
    return load_catalog(path)
