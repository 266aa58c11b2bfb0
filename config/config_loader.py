import os

import yaml


class ConfigLoader:
    def __init__(self, config_file="settings.yaml"):
        self.config_file = config_file
        self.config = {}
        if os.path.exists(config_file):
            with open(config_file, "r", encoding="utf-8") as f:
                self.config = yaml.safe_load(f) or {}

    @classmethod
    def from_mapping(cls, mapping):
        """Build a loader around an in-memory mapping (no file access)."""
        loader = cls.__new__(cls)
        loader.config_file = None
        loader.config = dict(mapping or {})
        return loader

    def get(self, *keys, default=None):
        """
        Return the value stored under the nested ``keys`` path.
        A missing path raises ``KeyError`` unless ``default`` is given.
        """
        ref = self.config
        for key in keys:
            if isinstance(ref, dict) and key in ref:
                ref = ref[key]
            else:
                if default is not None:
                    return default
                raise KeyError(f"Configuration key {' -> '.join(keys)} not found and no default provided.")
        return ref

    def section(self, name):
        """Return the mapping stored under ``name`` or an empty dict."""
        value = self.get(name, default={})
        return value if isinstance(value, dict) else {}
