from .object_parsing import find_subclass
