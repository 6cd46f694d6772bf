"""
Append-only JSON Lines output. One sample per line, one fsync per batch.

The file is opened and closed on every append; no handle is kept between
cycles. A crash mid-batch can leave a truncated last line, so readers of
the file should skip a trailing line that doesn't parse.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Iterable, Union

from promjsonl.errors import ConfigError, WriteError
from promjsonl.metrics import FlatSample

log = logging.getLogger(__name__)


def encode_sample(sample: FlatSample) -> str:
    """Serialize one sample as a JSON line. Non-finite values are rejected."""
    try:
        return json.dumps(sample.to_dict(), allow_nan=False) + "\n"
    except (TypeError, ValueError) as e:
        raise WriteError(f"failed to encode metric sample {sample.name}: {e}") from e


class JSONLWriter:

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ConfigError(
                f"failed to create directory for metrics file: {self._path.parent}: {e}"
            ) from e

    @property
    def path(self) -> Path:
        return self._path

    def append(self, samples: Iterable[FlatSample]) -> int:
        """Append samples and fsync. Returns the number of lines written.

        An encoding error stops the batch; lines already written stay in
        the file.
        """
        written = 0
        try:
            with open(self._path, "a", encoding="utf-8") as f:
                for sample in samples:
                    f.write(encode_sample(sample))
                    written += 1
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            raise WriteError(f"failed to write metrics file {self._path}: {e}") from e

        log.debug("Appended %d samples to %s", written, self._path)
        return written
