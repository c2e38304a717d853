# JSON-file persistence for bridge settings
import json
import os

from core.config import load_config, settings_to_dict
from core.models import BridgeSettings


class JsonConfigRepository:
    def __init__(self, path: str, logger=None):
        self.path = path
        self.logger = logger

    def load(self) -> BridgeSettings:
        return load_config(self.path)

    def save(self, settings: BridgeSettings) -> bool:
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(settings_to_dict(settings), handle, indent=2)
            os.replace(tmp_path, self.path)
        except (OSError, TypeError, ValueError) as exc:
            if self.logger:
                self.logger.error(f"Failed to save config to {self.path}: {exc}", exc_info=True)
            return False
        if self.logger:
            self.logger.debug(f"Saved config to {self.path}")
        return True
