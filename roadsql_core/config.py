"""RoadSQL Configuration - parser settings loaded from a YAML seed.

A seed file overrides the built-in defaults key by key:

    # roadsql.yaml
    max_nesting_depth: 64
    extra_keywords:
      - QUALIFY
      - PIVOT

Copyright (c) 2024-2026 BlackRoad OS, Inc. All rights reserved.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, FrozenSet, Optional, Union

import yaml

from roadsql_core.query.tokens import KEYWORDS

logger = logging.getLogger(__name__)


DEFAULT_SEED: Dict[str, Any] = {
    "max_nesting_depth": 128,
    "extra_keywords": [],
}


@dataclass(frozen=True)
class ParserSettings:
    """Tunables shared by every clause parser."""

    max_nesting_depth: int = 128
    extra_keywords: FrozenSet[str] = frozenset()

    @property
    def keywords(self) -> FrozenSet[str]:
        """Reserved words, never treated as column, table or alias names."""
        return KEYWORDS | self.extra_keywords

    def is_keyword(self, word: str) -> bool:
        return word.upper() in self.keywords

    @classmethod
    def from_dict(cls, seed: Dict[str, Any]) -> ParserSettings:
        """Build settings from a seed mapping.

        Raises:
            ValueError: Unknown key or invalid value
        """
        unknown = set(seed) - set(DEFAULT_SEED)
        if unknown:
            raise ValueError(f"Unknown parser settings: {', '.join(sorted(unknown))}")

        depth = seed.get("max_nesting_depth", DEFAULT_SEED["max_nesting_depth"])
        if not isinstance(depth, int) or isinstance(depth, bool) or depth < 1:
            raise ValueError(f"max_nesting_depth must be a positive integer, got {depth!r}")

        extra = seed.get("extra_keywords") or []
        if isinstance(extra, str) or not all(isinstance(word, str) for word in extra):
            raise ValueError("extra_keywords must be a list of strings")

        return cls(
            max_nesting_depth=depth,
            extra_keywords=frozenset(word.upper() for word in extra),
        )


DEFAULT_SETTINGS = ParserSettings()


def load_settings(seed_path: Optional[Union[str, Path]] = None) -> ParserSettings:
    """Load parser settings, merging a YAML seed over the defaults.

    Args:
        seed_path: Path to a YAML seed file; missing files fall back to defaults

    Returns:
        ParserSettings

    Raises:
        ValueError: The seed is not a mapping or holds invalid settings
    """
    seed = dict(DEFAULT_SEED)

    if seed_path is not None:
        seed_path = Path(seed_path)
        if seed_path.exists():
            with open(seed_path) as f:
                loaded = yaml.safe_load(f)
            if loaded is not None:
                if not isinstance(loaded, dict):
                    raise ValueError(f"Seed file {seed_path} must contain a mapping")
                seed.update(loaded)
            logger.info(f"Parser settings loaded from {seed_path}")
        else:
            logger.info(f"No seed file at {seed_path}, using default parser settings")

    return ParserSettings.from_dict(seed)


__all__ = [
    "DEFAULT_SEED",
    "DEFAULT_SETTINGS",
    "ParserSettings",
    "load_settings",
]
