"""modlock.mod — Mod model, parse context and the YAML mod parser."""

from modlock.mod.model import Mod, Resource, ResourceCollection, DEFAULT_MOD_NAME
from modlock.mod.context import ParseContext, ModParser
from modlock.mod.parser import YamlModParser, find_mod_file
from modlock.mod.files import list_files

__all__ = [
    "Mod", "Resource", "ResourceCollection", "DEFAULT_MOD_NAME",
    "ParseContext", "ModParser",
    "YamlModParser", "find_mod_file",
    "list_files",
]
