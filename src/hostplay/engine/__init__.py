"""
Hostplay Engine Module

Core execution engine: data model, conditions, templating and results.
The scheduler, host runner and playbook runner live in their own modules
(``hostplay.engine.scheduler``, ``.host_runner``, ``.runner``).
"""

from hostplay.engine.inventory import GlobalConfig, HostSpec, Inventory, ResolvedHost
from hostplay.engine.playbook import (
    CopyTask,
    Playbook,
    PlaybookParser,
    SearchReplaceTask,
    ShellTask,
    Task,
    TaskKind,
    TemplateTask,
)
from hostplay.engine.templating import TemplateRenderer
from hostplay.engine.conditions import Condition, parse_condition, evaluate_condition
from hostplay.engine.results import (
    HostReport,
    HostStatus,
    RunReport,
    RunSummary,
    TaskResult,
    TaskStatus,
)
from hostplay.engine.errors import (
    HostplayError,
    ParseError,
    UnsupportedFeatureError,
    ConnectionError,
    ExecutionError,
    EvalError,
    ResolutionError,
    TemplateError,
    TaskFailedError,
)

__all__ = [
    'GlobalConfig',
    'HostSpec',
    'Inventory',
    'ResolvedHost',
    'CopyTask',
    'Playbook',
    'PlaybookParser',
    'SearchReplaceTask',
    'ShellTask',
    'Task',
    'TaskKind',
    'TemplateTask',
    'TemplateRenderer',
    'Condition',
    'parse_condition',
    'evaluate_condition',
    'HostReport',
    'HostStatus',
    'RunReport',
    'RunSummary',
    'TaskResult',
    'TaskStatus',
    'HostplayError',
    'ParseError',
    'UnsupportedFeatureError',
    'ConnectionError',
    'ExecutionError',
    'EvalError',
    'ResolutionError',
    'TemplateError',
    'TaskFailedError',
]
