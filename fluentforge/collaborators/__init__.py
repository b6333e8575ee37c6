"""External collaborators: Protocol seams and their production backends.

Priority chain for every seam:
1. **Injected backends**: any object satisfying the Protocol (tests use
   in-process fakes).
2. **Production defaults**: subprocess, git CLI, pathspec and httpx backed
   implementations below, configured from ``fluentforge.config.settings``
   by the CLI.
"""

from fluentforge.collaborators.compiler import CargoCompiler, CompileRequest, Compiler
from fluentforge.collaborators.ignore import GitignoreMatcher, IgnoreMatcher
from fluentforge.collaborators.parser import CommandMethodParser, MethodParser
from fluentforge.collaborators.remote import BytecodeFetcher, JsonRpcBytecodeFetcher
from fluentforge.collaborators.repository import (
    GitRepository,
    RepositoryInspector,
    normalize_git_url,
)
from fluentforge.collaborators.transformer import BytecodeTransformer, CommandTransformer

__all__ = [
    # protocols
    "BytecodeFetcher",
    "BytecodeTransformer",
    "Compiler",
    "IgnoreMatcher",
    "MethodParser",
    "RepositoryInspector",
    # production backends
    "CargoCompiler",
    "CommandMethodParser",
    "CommandTransformer",
    "GitRepository",
    "GitignoreMatcher",
    "JsonRpcBytecodeFetcher",
    # helpers
    "CompileRequest",
    "normalize_git_url",
]
