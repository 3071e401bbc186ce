from wheel_ledger import logger


class State:
    """Holds the configuration dictionary built at startup"""

    def __init__(self, config):
        if config is None:
            raise ValueError("config is REQUIRED")
        self.config = config
        logger.debug(f"state initialized with {len(config)} config values")

    def get_config_value(self, key: str):
        return self.config[key]

    def get_optional_config_value(self, key: str, default=None):
        return self.config.get(key, default)
