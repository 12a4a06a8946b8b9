"""
Hostplay Modules

One module per task kind: shell, copy, search_replace, template.
"""

from hostplay.modules.base import Module, ModuleResult, get_module, missing_modules

__all__ = [
    'Module',
    'ModuleResult',
    'get_module',
    'missing_modules',
]
