"""Highest Random Weight (rendezvous) hashing."""
from .builder import build_registry
from .config import HrwConfig
from .errors import ConfigError, ContractViolation, HrwError, UnsupportedValueError
from .hasher import (
    DEFAULT_HASH_PROVIDER,
    MAX_U64,
    Blake2bHashProvider,
    FunctionHashProvider,
    HashProvider,
    encode_value,
    merge,
)
from .hrw import HrwNodes
from .node import WeightedNode, capacity_of
from .registry import NodeRegistry
from .weighted_hrw import WeightedHrwNodes

__version__ = "0.1.0"

__all__ = [
    "Blake2bHashProvider",
    "ConfigError",
    "ContractViolation",
    "DEFAULT_HASH_PROVIDER",
    "FunctionHashProvider",
    "HashProvider",
    "HrwConfig",
    "HrwError",
    "HrwNodes",
    "MAX_U64",
    "NodeRegistry",
    "UnsupportedValueError",
    "WeightedHrwNodes",
    "WeightedNode",
    "build_registry",
    "capacity_of",
    "encode_value",
    "merge",
]
