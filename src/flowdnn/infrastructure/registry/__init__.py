from ._serialization_core import (
    layer_from_config,
    layer_to_config,
    register_layer,
    registered_layers,
)

__all__ = [
    "layer_from_config",
    "layer_to_config",
    "register_layer",
    "registered_layers",
]
