from .core import load_yaml_config, clear_config_cache

from dotenv import load_dotenv

# Load environment variables
load_dotenv()


__all__ = [
    "load_yaml_config",
    "clear_config_cache",
]
