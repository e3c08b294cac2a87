import json
import logging

from threading import Lock

from graphstore.config.models import ProxyConfig

config_lock = Lock()


def get_file_config(filepath: str) -> ProxyConfig | None:
    """Read the transport properties from a JSON object such as
    ``{"socksProxyHost": "127.0.0.1", "socksProxyPort": "1080"}``."""
    with config_lock:
        try:
            with open(filepath) as f:
                properties = json.load(f)
                config = ProxyConfig.from_properties(
                    {
                        key: str(value)
                        for key, value in properties.items()
                        if value is not None
                    }
                )
                logging.info(f"Proxying enabled: {config.proxy_enabled}")
                return config
        except FileNotFoundError:
            logging.error(f"File {filepath} not found")
            return None
