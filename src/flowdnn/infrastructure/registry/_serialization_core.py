from __future__ import annotations

from typing import Any, Callable, Dict, Optional, Type

from ...domain._errors import ConfigurationError

_LAYER_REGISTRY: Dict[str, Type[Any]] = {}


def register_layer(name: Optional[str] = None) -> Callable[[Type[Any]], Type[Any]]:
    """
    Decorator to register a Layer class for config-based construction.
    """

    def deco(cls: Type[Any]) -> Type[Any]:
        key = name or cls.__name__
        _LAYER_REGISTRY[key] = cls
        return cls

    return deco


def registered_layers() -> tuple[str, ...]:
    return tuple(sorted(_LAYER_REGISTRY))


def layer_to_config(layer: Any) -> Dict[str, Any]:
    """
    Convert a Layer into a JSON-serializable descriptor.

    Node format
    -----------
    {
      "type": "InnerProductLayer",
      "config": {"name": "ip1", "bottom": ["data"], "top": ["ip1"], ...}
    }
    """
    return {"type": layer.__class__.__name__, "config": layer.get_config()}


def layer_from_config(node: Dict[str, Any]) -> Any:
    """
    Rebuild a Layer from a descriptor produced by `layer_to_config`.

    Raises
    ------
    ConfigurationError
        If the type is unknown or the config does not fit the constructor.
    """
    type_name = str(node["type"])
    if type_name not in _LAYER_REGISTRY:
        raise ConfigurationError(
            f"Unknown layer type '{type_name}'. Register it via @register_layer."
        )

    cls = _LAYER_REGISTRY[type_name]
    cfg = node.get("config", {}) or {}
    try:
        return cls.from_config(cfg)
    except TypeError as e:
        raise ConfigurationError(
            f"invalid config for {type_name}: {e}", layer=cfg.get("name")
        ) from e
