"""Reconciler for the config map holding one generated config file."""

import hashlib
from typing import Any

from yt_operator.labeller import Labeller
from yt_operator.logging_config import get_logger
from yt_operator.resources import ConfigMapResource, fetch_all
from yt_operator.ytconfig import GeneratorFunc, ReloadCheckerFunc, apply_override, parse_override

logger = get_logger(__name__)

CONFIG_HASH_ANNOTATION = "ytsaurus.tech/config-hash"


class ConfigHelper:
    """Keeps one config file in a config map in line with its generator.

    When an overrides config map is named, its entry for the same file name
    is merged over the generated content. The overrides map is only read,
    never written.
    """

    def __init__(
        self,
        labeller: Labeller,
        api,
        config_map_name: str,
        file_name: str,
        generator: GeneratorFunc,
        reload_checker: ReloadCheckerFunc | None = None,
        overrides_name: str | None = None,
    ):
        self.file_name = file_name
        self.generator = generator
        self.reload_checker = reload_checker
        self.config_map = ConfigMapResource(config_map_name, labeller, api)
        self.overrides = (
            ConfigMapResource(overrides_name, labeller, api) if overrides_name else None
        )
        self._desired: bytes | None = None

    def fetch(self) -> None:
        fetch_all([r for r in (self.config_map, self.overrides) if r is not None])

    def exists(self) -> bool:
        return self.config_map.exists()

    def override(self) -> dict[str, Any]:
        """Override for this file, empty when there is none.

        Raises:
            ValidationError: If the override entry cannot be parsed
        """
        if self.overrides is None:
            return {}
        content = self.overrides.get_data(self.file_name)
        if content is None:
            return {}
        return parse_override(content)

    def desired(self) -> bytes:
        # The generator is only invoked once a decision needs the content
        if self._desired is None:
            self._desired = apply_override(self.generator(), self.override())
        return self._desired

    def observed(self) -> bytes | None:
        data = self.config_map.get_data(self.file_name)
        return data.encode("utf-8") if data is not None else None

    def need_sync(self) -> bool:
        return not self.exists() or self.observed() != self.desired()

    def need_reload(self) -> bool:
        """Whether a pending config change requires running processes to restart."""
        if not self.exists() or self.observed() == self.desired():
            return False
        if self.reload_checker is None:
            return True
        return self.reload_checker(self.observed())

    def config_hash(self) -> str:
        return hashlib.sha256(self.desired()).hexdigest()

    def build(self) -> dict:
        manifest = self.config_map.build()
        manifest["data"][self.file_name] = self.desired().decode("utf-8")
        return manifest

    def sync(self) -> None:
        self.build()
        logger.debug(f"Syncing config map {self.config_map.name}")
        self.config_map.sync()
