from .config_dict import ConfigDict
from .inject import apply_config_mapping, map_config_to_class
from .application import Application

__all__ = ["ConfigDict", "Application", "apply_config_mapping", "map_config_to_class"]
