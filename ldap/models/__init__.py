from .directory_node import Node

__all__ = ['Node']
