"""
Hostplay Playbook Parser

Parses YAML playbooks into Playbook and task objects.

A task names its kind with exactly one key; the kind's mapping holds the
task parameters and its name::

    - shell:
        name: check uptime
        command: uptime
      tags: [diagnostics]
      register: up
    - copy:
        name: push config
        src: files/app.conf
        dest: /etc/app.conf
      when: up == changed
"""

import dataclasses
import enum
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, FrozenSet, List, Optional, Union

import yaml

from hostplay.engine.errors import ParseError, UnsupportedFeatureError
from hostplay.engine.inventory import GlobalConfig, parse_global_config, to_bool


class TaskKind(enum.Enum):
    """The closed set of task variants."""
    SHELL = "shell"
    COPY = "copy"
    SEARCH_REPLACE = "search_replace"
    TEMPLATE = "template"


# Task keys that are NOT task kinds
TASK_KEYWORDS = {'name', 'tags', 'register', 'when'}


@dataclass(frozen=True)
class Task:
    """Common task metadata. Concrete tasks are the subclasses below."""

    name: str
    tags: FrozenSet[str] = frozenset()
    register: Optional[str] = None
    when: Optional[str] = None

    kind = None  # type: Optional[TaskKind]

    def selected_by(self, tag_filter: FrozenSet[str]) -> bool:
        """An empty filter selects every task."""
        if not tag_filter:
            return True
        return bool(self.tags & tag_filter)

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class ShellTask(Task):
    command: str = ""

    kind = TaskKind.SHELL


@dataclass(frozen=True)
class CopyTask(Task):
    src: str = ""
    dest: str = ""
    remote_src: bool = False

    kind = TaskKind.COPY


@dataclass(frozen=True)
class SearchReplaceTask(Task):
    path: str = ""
    search: str = ""
    replace: str = ""

    kind = TaskKind.SEARCH_REPLACE


@dataclass(frozen=True)
class TemplateTask(Task):
    src: str = ""
    dest: str = ""
    variables: Dict[str, str] = field(default_factory=dict, hash=False)

    kind = TaskKind.TEMPLATE


# Required parameters per kind, and the class that carries them
TASK_CLASSES = {
    TaskKind.SHELL: (ShellTask, ('command',)),
    TaskKind.COPY: (CopyTask, ('src', 'dest')),
    TaskKind.SEARCH_REPLACE: (SearchReplaceTask, ('path', 'search')),
    TaskKind.TEMPLATE: (TemplateTask, ('src', 'dest')),
}


@dataclass(frozen=True)
class Include:
    """Another playbook to run before the including one."""

    file: Path
    tags: FrozenSet[str] = frozenset()


@dataclass
class Playbook:
    """Target hosts plus the ordered task list."""

    target_hosts: List[str]
    tasks: List[Task] = field(default_factory=list)
    name: Optional[str] = None
    local_config: Optional[GlobalConfig] = None
    includes: List[Include] = field(default_factory=list)
    source: Optional[str] = None

    @property
    def display_name(self) -> str:
        return self.name or self.source or "playbook"

    def __repr__(self) -> str:
        return f"Playbook(name={self.display_name!r}, hosts={self.target_hosts!r}, tasks={len(self.tasks)})"


class PlaybookParser:
    """
    Parse YAML playbooks into Playbook objects.

    Relative local paths (copy ``src`` without ``remote_src``, template
    ``src``, include files) are resolved against the playbook's directory.
    """

    def __init__(self, playbook_path: Union[str, Path]):
        self.playbook_path = Path(playbook_path)
        self._base_dir = self.playbook_path.parent

    def parse(self) -> Playbook:
        """
        Parse the playbook file.

        Raises:
            ParseError: If the playbook has syntax errors
            UnsupportedFeatureError: If the playbook uses unsupported features
        """
        if not self.playbook_path.exists():
            raise ParseError(
                f"Playbook not found: {self.playbook_path}",
                file_path=str(self.playbook_path)
            )

        content = self.playbook_path.read_text(encoding='utf-8')

        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as e:
            line = None
            mark = getattr(e, 'problem_mark', None)
            if mark is not None:
                line = mark.line + 1
            raise ParseError(
                f"YAML syntax error: {e}",
                file_path=str(self.playbook_path),
                line=line,
            )

        return self.parse_data(data)

    def parse_data(self, data: Any) -> Playbook:
        """Build a Playbook from an already-loaded document."""
        source = str(self.playbook_path)

        if not isinstance(data, dict):
            raise ParseError("Playbook must be a mapping", file_path=source)

        hosts = data.get('hosts')
        if isinstance(hosts, str):
            hosts = [hosts]
        if not isinstance(hosts, list) or not all(isinstance(h, str) for h in hosts):
            raise ParseError("'hosts' must be a list of addresses", file_path=source)

        raw_tasks = data.get('tasks') or []
        if not isinstance(raw_tasks, list):
            raise ParseError("'tasks' must be a list", file_path=source)

        local_config = None
        if data.get('local_config') is not None:
            local_config = parse_global_config(data['local_config'], source)

        return Playbook(
            name=data.get('name'),
            target_hosts=list(hosts),
            tasks=[self._parse_task(t, idx) for idx, t in enumerate(raw_tasks)],
            local_config=local_config,
            includes=self._parse_includes(data.get('include')),
            source=source,
        )

    def _parse_includes(self, raw: Any) -> List[Include]:
        if raw is None:
            return []
        if not isinstance(raw, list):
            raise ParseError("'include' must be a list", file_path=str(self.playbook_path))

        includes = []
        for entry in raw:
            if isinstance(entry, str):
                entry = {'file': entry}
            if not isinstance(entry, dict) or not entry.get('file'):
                raise ParseError("include entry needs a 'file'", file_path=str(self.playbook_path))
            if entry.get('when') is not None:
                raise UnsupportedFeatureError(
                    "'when' on include",
                    "Put the condition on the included tasks instead",
                )
            includes.append(Include(
                file=self._resolve_local(str(entry['file'])),
                tags=_parse_tags(entry.get('tags'), str(self.playbook_path)),
            ))
        return includes

    def _parse_task(self, data: Any, index: int) -> Task:
        source = str(self.playbook_path)
        where = f"task #{index + 1}"

        if not isinstance(data, dict):
            raise ParseError(f"{where} must be a mapping", file_path=source)

        kind_keys = [k for k in data if k not in TASK_KEYWORDS]
        if len(kind_keys) != 1:
            found = ", ".join(str(k) for k in kind_keys) or "none"
            raise ParseError(
                f"{where} must have exactly one task kind (found: {found})",
                file_path=source,
            )

        kind_key = kind_keys[0]
        try:
            kind = TaskKind(kind_key)
        except ValueError:
            supported = ", ".join(k.value for k in TaskKind)
            raise ParseError(
                f"{where}: unknown task kind {kind_key!r} (supported: {supported})",
                file_path=source,
            )

        params = data[kind_key] or {}
        if not isinstance(params, dict):
            raise ParseError(f"{where}: '{kind_key}' must be a mapping", file_path=source)
        params = dict(params)

        name = params.pop('name', None) or data.get('name')
        if not name:
            raise ParseError(f"{where}: missing 'name'", file_path=source)
        where = f"task '{name}'"

        task_cls, required = TASK_CLASSES[kind]
        for key in required:
            if params.get(key) in (None, ''):
                raise ParseError(f"{where}: missing required parameter '{key}'", file_path=source)

        known = {f for f in task_cls.__dataclass_fields__} - {'name', 'tags', 'register', 'when'}
        unknown = set(params) - known
        if unknown:
            raise ParseError(
                f"{where}: unknown parameters for {kind.value}: {', '.join(sorted(unknown))}",
                file_path=source,
            )

        when = data.get('when')
        if when is not None and not isinstance(when, str):
            raise ParseError(f"{where}: 'when' must be a string", file_path=source)

        register = data.get('register')
        if register is not None and not isinstance(register, str):
            raise ParseError(f"{where}: 'register' must be a string", file_path=source)

        common = dict(
            name=str(name),
            tags=_parse_tags(data.get('tags'), source),
            register=register or None,
            when=when,
        )
        return task_cls(**common, **self._task_params(kind, params, where))

    def _task_params(self, kind: TaskKind, params: Dict[str, Any], where: str) -> Dict[str, Any]:
        if kind is TaskKind.SHELL:
            return {'command': str(params['command'])}

        if kind is TaskKind.COPY:
            remote_src = to_bool(params.get('remote_src', False))
            src = str(params['src'])
            return {
                'src': src if remote_src else str(self._resolve_local(src)),
                'dest': str(params['dest']),
                'remote_src': remote_src,
            }

        if kind is TaskKind.SEARCH_REPLACE:
            return {
                'path': str(params['path']),
                'search': str(params['search']),
                'replace': str(params.get('replace', '')),
            }

        if kind is TaskKind.TEMPLATE:
            variables = params.get('variables') or {}
            if not isinstance(variables, dict):
                raise ParseError(f"{where}: 'variables' must be a mapping", file_path=str(self.playbook_path))
            return {
                'src': str(self._resolve_local(str(params['src']))),
                'dest': str(params['dest']),
                'variables': {str(k): str(v) for k, v in variables.items()},
            }

        raise AssertionError(f"unhandled task kind: {kind}")

    def _resolve_local(self, path: str) -> Path:
        candidate = Path(path).expanduser()
        if candidate.is_absolute():
            return candidate
        return self._base_dir / candidate


def _parse_tags(raw: Any, source: str) -> FrozenSet[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str):
        return frozenset(t.strip() for t in raw.split(',') if t.strip())
    if isinstance(raw, list):
        return frozenset(str(t) for t in raw)
    raise ParseError("'tags' must be a string or a list", file_path=source)


def load_playbook_chain(playbook_path: Union[str, Path]) -> List[Playbook]:
    """
    Load a playbook and its includes, in execution order.

    Includes run before the including playbook, depth first, in
    declaration order. An include's tags are added to all of its tasks.

    Raises:
        ParseError: On malformed documents or include cycles
    """
    chain: List[Playbook] = []
    _load_into(Path(playbook_path), frozenset(), chain, [])
    return chain


def _load_into(
    path: Path,
    extra_tags: FrozenSet[str],
    chain: List[Playbook],
    stack: List[Path],
) -> None:
    resolved = path.resolve()
    if resolved in stack:
        cycle = " -> ".join(str(p) for p in stack + [resolved])
        raise ParseError(f"include cycle: {cycle}", file_path=str(path))

    playbook = PlaybookParser(path).parse()

    for include in playbook.includes:
        _load_into(include.file, extra_tags | include.tags, chain, stack + [resolved])

    if extra_tags:
        playbook.tasks = [_with_tags(t, extra_tags) for t in playbook.tasks]
    chain.append(playbook)


def _with_tags(task: Task, tags: FrozenSet[str]) -> Task:
    return dataclasses.replace(task, tags=task.tags | tags)
