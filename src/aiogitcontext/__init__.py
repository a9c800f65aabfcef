"""aiogitcontext: async Python library for switching git identities by context."""

from ._version import __version__
from .exceptions import (
    ContextValidationError,
    FileError,
    FilePermissionError,
    GitContextError,
    ImportFormatError,
    MalformedDataError,
    NotFoundError,
    PathSecurityError,
)
from .files import FileCoordinator, PathLockTable
from .git import get_active_config, get_remote_url
from .gitconfig import ConfigTransformer, LineConfigTransformer
from .manager import ContextManager
from .models import (
    Context,
    ContextTemplate,
    ImportFailure,
    ImportResult,
    ValidationResult,
    get_template,
    list_templates,
    validate_context,
)
from .paths import GitContextPaths
from .patterns import (
    compile_path,
    compile_url,
    expand_home,
    find_context_for_path,
    find_context_for_url,
    matches,
    normalize_git_url,
)

__all__ = [
    "ConfigTransformer",
    "Context",
    "ContextManager",
    "ContextTemplate",
    "ContextValidationError",
    "FileCoordinator",
    "FileError",
    "FilePermissionError",
    "GitContextError",
    "GitContextPaths",
    "ImportFailure",
    "ImportFormatError",
    "ImportResult",
    "LineConfigTransformer",
    "MalformedDataError",
    "NotFoundError",
    "PathLockTable",
    "PathSecurityError",
    "ValidationResult",
    "__version__",
    "compile_path",
    "compile_url",
    "expand_home",
    "find_context_for_path",
    "find_context_for_url",
    "get_active_config",
    "get_remote_url",
    "get_template",
    "list_templates",
    "matches",
    "normalize_git_url",
    "validate_context",
]
