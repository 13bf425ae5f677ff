import json
from typing import List, Optional

from pydantic import TypeAdapter, ValidationError

from core.config import settings
from core.exceptions import ConfigurationException
from core.logger import get_logger, register_webhook_url
from models.target import Target

logger = get_logger(__name__)

_TARGET_LIST = TypeAdapter(List[Target])


class TargetRepository:
    """
    Repository for the watched targets.

    Targets are read from a JSON file of the form {"targets": [...]}.
    """

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.TARGETS_PATH
        self._targets: Optional[List[Target]] = None

    def load(self) -> List[Target]:
        """
        Loads and validates the target file.

        Raises:
            ConfigurationException: If the file is missing, malformed, or
                two targets share the same (name, url)
        """
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError:
            raise ConfigurationException(f"targets file not found: {self.path}")
        except json.JSONDecodeError as e:
            raise ConfigurationException(f"targets file is no valid json: {e}", {"path": self.path})

        if not isinstance(raw, dict) or not isinstance(raw.get("targets"), list):
            raise ConfigurationException("targets file must contain a 'targets' list", {"path": self.path})

        try:
            targets = _TARGET_LIST.validate_python(raw["targets"])
        except ValidationError as e:
            raise ConfigurationException(f"invalid target configuration: {e}", {"path": self.path})

        self._check_duplicates(targets)
        for target in targets:
            for webhook in target.webhooks:
                register_webhook_url(webhook.url)
        self._targets = targets
        logger.info(f"[TARGETS] Loaded {len(targets)} targets from {self.path}")
        return targets

    @staticmethod
    def _check_duplicates(targets: List[Target]) -> None:
        seen = set()
        for target in targets:
            if target.identity in seen:
                raise ConfigurationException(
                    f"duplicate target {target.name!r}", {"url": target.url}
                )
            seen.add(target.identity)

    def get_all_targets(self) -> List[Target]:
        if self._targets is None:
            return self.load()
        return self._targets

    def get_enabled_targets(self, name: Optional[str] = None) -> List[Target]:
        """Returns enabled targets, optionally filtered to a single name."""
        targets = [t for t in self.get_all_targets() if not t.disabled]
        if name:
            targets = [t for t in targets if t.name == name]
        return targets

    def get_target_by_name(self, name: str) -> Optional[Target]:
        for target in self.get_all_targets():
            if target.name == name:
                return target
        return None
