"""
Hostplay search_replace module

Replace all matches of a regular expression within a remote file.

Replacement strings use ``$`` group references::

    $1, ${1}        numbered group
    $name, ${name}  named group
    $$              a literal dollar sign

``$name`` takes the longest run of letters, digits and underscores, so
write ``${1}_old`` rather than ``$1_old``. A reference to a group that
does not exist or did not participate in the match expands to nothing.
Backslashes are ordinary characters.
"""

import re
from typing import Callable, List, Match, Optional, Pattern, Union

from hostplay.engine.playbook import SearchReplaceTask, TaskKind
from hostplay.modules.base import Module, ModuleResult, register_module


_GROUP_REF = re.compile(r'\$(?:(\$)|\{([^}]*)\}|([0-9A-Za-z_]+))')


class GroupName(str):
    """A named group reference in a parsed replacement."""


def parse_replacement(template: str) -> List[Union[str, int]]:
    """Split a replacement template into literal text and group references."""
    parts: List[Union[str, int]] = []
    pos = 0
    for ref in _GROUP_REF.finditer(template):
        if ref.start() > pos:
            parts.append(template[pos:ref.start()])
        dollar, braced, bare = ref.groups()
        if dollar:
            parts.append('$')
        else:
            name = braced if braced is not None else bare
            parts.append(int(name) if name.isascii() and name.isdigit() else GroupName(name))
        pos = ref.end()
    if pos < len(template):
        parts.append(template[pos:])
    return parts


def expand_replacement(template: str) -> Callable[[Match[str]], str]:
    """Build a ``re.sub`` callable expanding ``template`` for each match."""
    parts = parse_replacement(template)

    def expand(match: Match[str]) -> str:
        out = []
        for part in parts:
            if isinstance(part, GroupName):
                value = match.groupdict().get(part)
            elif isinstance(part, int):
                value = match.group(part) if part <= match.re.groups else None
            else:
                value = part
            out.append(value or '')
        return ''.join(out)

    return expand


@register_module
class SearchReplaceModule(Module):
    """
    Replace all matches of ``search`` in the file at ``path``.

    The file is only written back when the substitution changed its text.
    """

    kind = TaskKind.SEARCH_REPLACE
    task: SearchReplaceTask

    _pattern: Optional[Pattern[str]] = None

    def validate(self) -> Optional[str]:
        # Compile before touching the host
        try:
            self._pattern = re.compile(self.task.search)
        except re.error as e:
            return f"Invalid regex {self.task.search!r}: {e}"
        return None

    async def run(self) -> ModuleResult:
        path = self.task.path
        pattern = self._pattern or re.compile(self.task.search)

        raw = await self.connection.download(path)
        try:
            content = raw.decode('utf-8')
        except UnicodeDecodeError:
            return ModuleResult(
                failed=True,
                msg=f"{path} is not valid UTF-8 text",
            )

        new_content = pattern.sub(expand_replacement(self.task.replace), content)

        if new_content == content:
            return ModuleResult(
                changed=False,
                msg=f"Pattern unchanged in {path}",
            )

        await self.connection.upload(new_content.encode('utf-8'), path)
        return ModuleResult(
            changed=True,
            msg=f"Pattern replaced in {path}",
        )
