"""Configuration injection utilities.

This module provides decorators mapping configuration paths onto class
attributes, with support for nested configuration classes and default
initialization when a section is missing from the file.
"""

from typing import Any, Callable, Dict, Optional, TypeVar, get_type_hints
from .config_dict import ConfigDict


T = TypeVar('T', bound=type)


def map_config_to_class(**config_mapping: str) -> Callable[[T], T]:
    """Class decorator: map global configuration to class attributes.

    When an attribute is annotated with a class decorated by ``config_class``,
    an instance of that class is created and filled from its own mapping;
    otherwise the raw configuration value is assigned. The mapping is kept on
    the class so it can be applied again after a different file is loaded.

    Args:
        **config_mapping: Configuration item mapping, format {'attr_name': 'config_path'}

    Returns:
        Decorated class with injected configuration values

    Example:
        @config_class(LEVEL="logger.level")
        class LoggerConfig:
            LEVEL: ClassVar[str] = "INFO"

        @map_config_to_class(LOGGER_CONFIG="logger")
        class Application:
            LOGGER_CONFIG: LoggerConfig
    """
    def decorator(cls: T) -> T:
        setattr(cls, '_root_mapping', config_mapping)
        apply_config_mapping(cls, ConfigDict.get_instance())
        return cls

    return decorator


def apply_config_mapping(cls: type, config: ConfigDict) -> None:
    """(Re)apply the mapping stored by ``map_config_to_class`` on cls.

    Args:
        cls: Class decorated with map_config_to_class
        config: Configuration to read values from
    """
    mapping: Dict[str, str] = getattr(cls, '_root_mapping', {})
    type_hints = get_type_hints(cls)

    for attr_name, config_path in mapping.items():
        config_value = config.get_path(config_path)
        attr_type = type_hints.get(attr_name)

        if isinstance(attr_type, type) and hasattr(attr_type, '_config_mapping'):
            setattr(cls, attr_name, _create_instance_with_config(attr_type, config))
        elif config_value is not None:
            setattr(cls, attr_name, config_value)


def _create_instance_with_config(cls_type: type, config: ConfigDict) -> Any:
    """Create an instance of a configuration class and inject values into it.

    Class defaults are copied first, so unmapped or missing items keep them.

    Args:
        cls_type: The class type to instantiate
        config: The configuration object to inject from

    Returns:
        Instance with injected configuration
    """
    instance = cls_type()
    for attr_name in dir(cls_type):
        if attr_name.startswith('_'):
            continue
        attr = getattr(cls_type, attr_name)
        if isinstance(attr, property) or callable(attr):
            continue
        setattr(instance, attr_name, attr)

    config_mapping: Dict[str, str] = getattr(cls_type, '_config_mapping')
    for attr_name, attr_config_path in config_mapping.items():
        value: Optional[Any] = config.get_path(attr_config_path)
        if value is not None:
            setattr(instance, attr_name, value)

    return instance


def config_class(**config_mapping: str) -> Callable[[T], T]:
    """Class decorator to mark a class as configurable with its own mapping.

    Args:
        **config_mapping: Attribute name to full dotted configuration path

    Returns:
        Decorated class with stored configuration mapping

    Example:
        @config_class(
            RETRIES="krustlet.csr_poll.retries",
        )
        class KrustletConfig:
            RETRIES: ClassVar[int] = 10
    """
    def decorator(cls: T) -> T:
        setattr(cls, '_config_mapping', config_mapping)
        return cls

    return decorator
