"""YAML file backed allocation store."""

import os
import tempfile
from pathlib import Path
from typing import Any, Dict

import yaml

from autoinvest.store.base import AllocationStore
from autoinvest.utils.exceptions import ConfigurationError
from autoinvest.utils.logging import get_logger

logger = get_logger(__name__)


class YamlAllocationStore(AllocationStore):
    """Persist allocation settings to a YAML file.

    The file is rewritten atomically on every change.

    Example:
        >>> store = YamlAllocationStore("data/allocations.yaml")
        >>> store.set_allocations([Allocation("VOO", 60), Allocation("BND", 40)])
        >>> store.get_buffer_percent()
        0.05
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, "r", encoding="utf-8") as f:
                state = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Allocation file {self.path} is not valid YAML: {e}") from e

        if state is None:
            return {}
        if not isinstance(state, dict):
            raise ConfigurationError(f"Allocation file {self.path} must contain a mapping")
        return state

    def _save(self, state: Dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                yaml.safe_dump(state, f, sort_keys=False)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug("Wrote allocation settings to %s", self.path)
