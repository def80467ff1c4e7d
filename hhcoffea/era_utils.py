"""Data-taking periods and small file helpers."""

import json
import logging

from hhcoffea.analysis_config import BTAG_WORKING_POINTS

logger = logging.getLogger(__name__)

# Every period with b-tag working points configured, oldest first.
PERIODS = tuple(BTAG_WORKING_POINTS)


def validate_period(period):
    """Return ``period`` unchanged, or raise ``ValueError`` if it has no configuration."""
    if period not in PERIODS:
        raise ValueError(f"Unsupported period: {period}. Valid periods: {list(PERIODS)}")
    return period


def load_json(filepath):
    """Read a JSON mapping such as a dumped production summary."""
    try:
        with open(filepath, encoding="utf-8") as file:
            data = json.load(file)
    except (OSError, json.JSONDecodeError) as e:
        raise RuntimeError(f"Failed to read JSON file {filepath}: {e}") from e
    logger.info("Loaded JSON file %s", filepath)
    return data
