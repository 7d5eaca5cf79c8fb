"""
vendorsync CLI package.

Framework utilities for building CLI commands:
- _output: Output formatting (JSON/text modes)
- _args: Common argument registration helpers
- _utils: Shared CLI utilities
"""
from ._output import OutputFormatter
from ._args import add_config_flag, add_json_flag, add_repo_root_flag, add_verbose_flag
from ._utils import get_repo_root

__all__ = [
    # Output formatting
    "OutputFormatter",
    # Argument helpers
    "add_json_flag",
    "add_repo_root_flag",
    "add_config_flag",
    "add_verbose_flag",
    # Utilities
    "get_repo_root",
]
