"""
Feature history persistence

JSON dumps of a FeatureHistory for offline analysis. Called explicitly by the
owner of the history; extraction never touches the filesystem.
"""

import json
import logging
import time
from pathlib import Path
from typing import List, Optional, Union

from ..exceptions import DataError
from ..models import FeatureVector
from .history import FeatureHistory

logger = logging.getLogger(__name__)


def persist_history(history: FeatureHistory, directory: Union[str, Path], symbol: str,
                    stamp: Optional[int] = None) -> Path:
    """
    Write every retained vector to `<directory>/<symbol>_features_<stamp>.json`

    Args:
        history: History to dump (oldest first)
        directory: Target directory, created if missing
        symbol: Symbol used in the file name
        stamp: File name stamp (milliseconds since epoch when None)

    Returns:
        Path of the written file
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    if stamp is None:
        stamp = int(time.time() * 1000)

    path = directory / f"{symbol}_features_{stamp}.json"
    payload = {
        "symbol": symbol,
        "count": len(history),
        "features": [vector.to_dict() for vector in history],
    }
    path.write_text(json.dumps(payload))

    logger.info(f"Persisted {len(history)} feature vectors for {symbol} to {path}")
    return path


def load_history(path: Union[str, Path], capacity: Optional[int] = None) -> FeatureHistory:
    """
    Rebuild a FeatureHistory from a file written by persist_history

    Raises:
        DataError: If the file is not a feature dump
    """
    path = Path(path)
    try:
        payload = json.loads(path.read_text())
        rows: List[dict] = payload["features"]
    except (ValueError, KeyError, TypeError) as e:
        raise DataError(f"Not a feature history dump: {path}") from e

    history = FeatureHistory(capacity or max(len(rows), 1))
    for row in rows:
        history.append(FeatureVector.from_dict(row))

    logger.debug(f"Loaded {len(history)} feature vectors from {path}")
    return history


__all__ = ["persist_history", "load_history"]
