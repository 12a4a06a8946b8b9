"""
Hostplay template module

Render a Jinja2 template on the control node and deploy it to the host.
"""

from hostplay.engine.errors import TaskFailedError
from hostplay.engine.playbook import TaskKind, TemplateTask
from hostplay.engine.templating import get_renderer
from hostplay.modules.base import Module, ModuleResult, read_local, register_module


@register_module
class TemplateModule(Module):
    """
    Template a file to a remote host.

    Renders ``src`` with the task's ``variables`` and uploads the result
    to ``dest`` if the destination content differs. Unbound placeholders
    fail the task before anything is uploaded.
    """

    kind = TaskKind.TEMPLATE
    task: TemplateTask

    async def run(self) -> ModuleResult:
        src = self.task.src
        dest = self.task.dest

        try:
            body = read_local(src).decode('utf-8')
        except UnicodeDecodeError:
            raise TaskFailedError(f"Template {src} is not valid UTF-8")

        rendered = get_renderer().render(body, self.task.variables)

        result = await self.deploy(rendered.encode('utf-8'), dest)
        if result.changed:
            result.msg = f"Template rendered to {dest}"
        return result
