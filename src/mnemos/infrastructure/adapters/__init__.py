# Infrastructure Adapters Package
from .yaml_deck import YamlDeckRepository

__all__ = ["YamlDeckRepository"]
